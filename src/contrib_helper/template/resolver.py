"""
Resolution of the template repository and its baseline commit.

The template is named by URL in the project configuration. The URL is
normalized into a host/owner/name identity and the head of the
template's default branch is read once from the hosting API. That head
(commit SHA and author date, taken from a single response) is the
baseline every later stage compares against.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from contrib_helper.hosting.github_client import GitHubClient, HostingError
from contrib_helper.vcs.git_client import GitClient, GitError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


_HTTPS_URL = re.compile(
    r"^https://(?P<host>[^/\s@]+)/(?P<owner>[^/\s]+)/(?P<name>[^/\s]+?)(?:\.git)?/?$"
)
_SCP_URL = re.compile(
    r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<owner>[^/\s:]+)/(?P<name>[^/\s]+?)(?:\.git)?$"
)

HostingFactory = Callable[[str], GitHubClient]


class ResolutionError(Exception):
    """Raised when the template or current repository cannot be identified."""

    pass


class NoTemplateConfigured(ResolutionError):
    """Raised when the configuration does not name a template URL."""

    pass


class UnsupportedUrlFormat(ResolutionError):
    """Raised when a repository URL is neither SSH nor HTTPS style."""

    pass


class UpstreamUnavailable(ResolutionError):
    """Raised when the hosting platform cannot be queried."""

    pass


@dataclass(frozen=True)
class RepoId:
    """Owner/name identity of a repository on a given host."""

    host: str
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.slug


@dataclass(frozen=True)
class TemplateReference:
    """Snapshot of the template repository taken once per run."""

    repo: RepoId
    url: str
    default_branch: str
    baseline_commit: str
    baseline_timestamp: datetime


def parse_repo_url(url: str) -> RepoId:
    """Normalize a repository URL into a :class:`RepoId`.

    Supported forms are ``[user@]host:owner/repo[.git]`` and
    ``https://host/owner/repo[.git]``.

    Raises
    ------
    UnsupportedUrlFormat
        For any other form.
    """
    candidate = url.strip()
    match = _HTTPS_URL.match(candidate) or _SCP_URL.match(candidate)
    if match is None or not match.group("name"):
        raise UnsupportedUrlFormat(f"Unsupported repository URL format: {url}")
    return RepoId(
        host=match.group("host"),
        owner=match.group("owner"),
        name=match.group("name"),
    )


def _template_settings(config: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if not config:
        return {}
    template = config.get("template")
    return template if isinstance(template, Mapping) else {}


class TemplateResolver:
    """Determine the template repository and its baseline commit.

    Parameters
    ----------
    hosting_for : Callable[[str], GitHubClient]
        Returns the hosting client to use for a given host name.
    """

    def __init__(self, hosting_for: HostingFactory) -> None:
        self.hosting_for = hosting_for

    def resolve(self, config: Optional[Mapping[str, Any]]) -> TemplateReference:
        """Resolve the template named by ``config``.

        Raises
        ------
        NoTemplateConfigured
            If ``config`` is absent or has no ``template.url``.
        UnsupportedUrlFormat
            If the URL cannot be normalized.
        UpstreamUnavailable
            If the hosting platform query fails for any reason.
        """
        settings = _template_settings(config)
        url = settings.get("url")
        if not url:
            raise NoTemplateConfigured(
                "No template configured. Add a [template] section with a 'url' key to .chuckrc"
            )

        repo = parse_repo_url(url)
        logger.debug("Template repository: %s on %s", repo.slug, repo.host)
        hosting = self.hosting_for(repo.host)
        try:
            branch = settings.get("branch") or hosting.get_repository(repo.slug).default_branch
            head = hosting.get_branch_head(repo.slug, branch)
        except HostingError as exc:
            raise UpstreamUnavailable(
                f"Could not read the head of template {repo.slug}: {exc}"
            ) from exc

        logger.debug("Template baseline: %s (%s)", head.sha[:7], head.authored_at.isoformat())
        return TemplateReference(
            repo=repo,
            url=url,
            default_branch=branch,
            baseline_commit=head.sha,
            baseline_timestamp=head.authored_at,
        )


def resolve_current_repo(
    git: GitClient, hosting_for: HostingFactory, remote: str = "origin"
) -> RepoId:
    """Identify the repository being worked on from its ``remote`` URL.

    The identity is confirmed with the hosting platform, which also
    yields the canonical spelling of owner and name.

    Raises
    ------
    ResolutionError
        If the remote is missing, its URL is unsupported, or the hosting
        platform does not know the repository.
    """
    try:
        url = git.get_remote_url(remote)
    except GitError as exc:
        raise ResolutionError(f"Could not read remote '{remote}': {exc}") from exc
    if not url:
        raise ResolutionError(
            f"The current repository has no '{remote}' remote; cannot tell which repository this is"
        )

    local = parse_repo_url(url)
    try:
        info = hosting_for(local.host).get_repository(local.slug)
    except HostingError as exc:
        raise UpstreamUnavailable(
            f"Could not look up current repository {local.slug}: {exc}"
        ) from exc
    return RepoId(host=local.host, owner=info.owner, name=info.name)
