"""
Client for the GitHub REST API.

Only the handful of read-only calls needed to compare a repository with
its template are implemented: repository metadata, the head commit of a
branch and the commit listing of a repository. Responses are validated
at this boundary and turned into small record types; a response that
does not have the expected shape raises :class:`MalformedResponse`.
Transport failures and non-200 statuses raise :class:`HostingError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_API_URL = "https://api.github.com"


class HostingError(Exception):
    """Raised when communication with the hosting platform fails."""

    pass


class MalformedResponse(HostingError):
    """Raised when a response does not contain the expected fields."""

    pass


@dataclass(frozen=True)
class RepositoryInfo:
    """Identity and default branch of a hosted repository."""

    owner: str
    name: str
    default_branch: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class CommitRecord:
    """A validated commit entry returned by the commits API."""

    sha: str
    message: str
    author: str
    authored_at: datetime


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp as returned by the API.

    Naive values are interpreted as UTC so that comparisons between
    timestamps are always well defined.

    Raises
    ------
    MalformedResponse
        If ``value`` is not a parseable timestamp string.
    """
    if not isinstance(value, str) or not value:
        raise MalformedResponse(f"Invalid timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MalformedResponse(f"Invalid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_commit_record(data: Any) -> CommitRecord:
    """Validate one element of a commits listing.

    The sha, the message and the author date are required. The author
    name falls back to the account login, then to ``"unknown"``.

    Raises
    ------
    MalformedResponse
        If a required field is missing or has the wrong type.
    """
    if not isinstance(data, dict):
        raise MalformedResponse("Commit record is not an object")
    sha = data.get("sha")
    if not isinstance(sha, str) or not sha:
        raise MalformedResponse("Commit record is missing 'sha'")
    commit = data.get("commit")
    if not isinstance(commit, dict):
        raise MalformedResponse(f"Commit {sha} is missing 'commit'")
    message = commit.get("message")
    if not isinstance(message, str):
        raise MalformedResponse(f"Commit {sha} is missing 'commit.message'")
    git_author = commit.get("author")
    if not isinstance(git_author, dict):
        raise MalformedResponse(f"Commit {sha} is missing 'commit.author'")
    authored_at = parse_timestamp(git_author.get("date"))

    author = git_author.get("name")
    if not isinstance(author, str) or not author:
        account = data.get("author")
        author = account.get("login") if isinstance(account, dict) else None
    return CommitRecord(
        sha=sha,
        message=message,
        author=author or "unknown",
        authored_at=authored_at,
    )


@dataclass
class GitHubClient:
    """Client for interacting with the GitHub REST API.

    Parameters
    ----------
    api_url : str, optional
        Base URL of the API. Defaults to ``https://api.github.com``.
    token : str, optional
        Personal access token sent as a bearer token when provided.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests. Defaults to 30 seconds.
    per_page : int, optional
        Page size requested from list endpoints.
    max_pages : int, optional
        Upper bound on the number of pages followed by :meth:`list_commits`.
    """

    api_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    request_timeout: float = 30.0
    per_page: int = 100
    max_pages: int = 10

    @staticmethod
    def api_url_for_host(host: str) -> str:
        """Return the API base URL for a repository host."""
        if host.lower() in {"github.com", "www.github.com"}:
            return DEFAULT_API_URL
        # GitHub Enterprise Server
        return f"https://{host}/api/v3"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.api_url.rstrip('/')}/{path.lstrip('/')}"

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        logger.debug("GET %s params=%s", url, params)
        try:
            response = requests.get(
                url,
                headers=self._headers(),
                params=params,
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Request to %s failed: %s", url, exc)
            raise HostingError(f"Request to {url} failed: {exc}") from exc
        if response.status_code != 200:
            logger.error(
                "GET %s returned status %s: %s", url, response.status_code, response.text
            )
            raise HostingError(
                f"GET {url} returned status {response.status_code}: {_error_message(response)}"
            )
        return response

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self._get(url, params)
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Failed to parse response from %s: %s", url, exc)
            raise MalformedResponse(f"Response from {url} is not valid JSON") from exc

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    def get_repository(self, slug: str) -> RepositoryInfo:
        """Return the canonical identity and default branch of ``slug``."""
        data = self._get_json(self._url(f"repos/{slug}"))
        if not isinstance(data, dict):
            raise MalformedResponse(f"Repository {slug} response is not an object")
        owner = data.get("owner")
        login = owner.get("login") if isinstance(owner, dict) else None
        name = data.get("name")
        default_branch = data.get("default_branch")
        if not (isinstance(login, str) and isinstance(name, str) and isinstance(default_branch, str)):
            raise MalformedResponse(f"Repository {slug} response is missing identity fields")
        return RepositoryInfo(owner=login, name=name, default_branch=default_branch)

    def get_branch_head(self, slug: str, branch: str) -> CommitRecord:
        """Return the head commit of ``branch``: sha and author date together."""
        data = self._get_json(self._url(f"repos/{slug}/commits/{branch}"))
        return parse_commit_record(data)

    def list_commits(self, slug: str, ref: Optional[str] = None) -> List[Any]:
        """Return the raw commit entries of ``slug``, newest first.

        Elements are returned unvalidated so that callers can decide how
        to treat individual malformed entries; use
        :func:`parse_commit_record` on each. Pagination follows the
        ``next`` links for at most :attr:`max_pages` pages.

        Raises
        ------
        MalformedResponse
            If a page is not a JSON list.
        """
        params: Optional[Dict[str, Any]] = {"per_page": self.per_page}
        if ref:
            params["sha"] = ref
        url: Optional[str] = self._url(f"repos/{slug}/commits")
        entries: List[Any] = []
        pages = 0
        while url and pages < self.max_pages:
            response = self._get(url, params)
            try:
                page = response.json()
            except ValueError as exc:
                raise MalformedResponse(f"Commit listing for {slug} is not valid JSON") from exc
            if not isinstance(page, list):
                raise MalformedResponse(f"Commit listing for {slug} is not a list")
            entries.extend(page)
            pages += 1
            url = (response.links or {}).get("next", {}).get("url")
            # the next link already carries the query string
            params = None
        if url:
            logger.warning(
                "Stopped listing commits for %s after %d pages", slug, self.max_pages
            )
        logger.debug("Listed %d commits for %s", len(entries), slug)
        return entries


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return response.text
