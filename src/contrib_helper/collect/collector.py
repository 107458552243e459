"""
Discovery of the commits that are candidates for contribution.

Candidates are the commits of the current repository whose author date
is strictly later than the template baseline's author date. This is a
timestamp cut, not an ancestry check: histories that diverged and were
merged again can yield commits a merge-base comparison would exclude,
and miss ones it would include. Each candidate is enriched with the
paths it touches, read from the local repository.
"""

from __future__ import annotations

import logging
from typing import List

from contrib_helper.hosting.github_client import (
    GitHubClient,
    HostingError,
    MalformedResponse as MalformedRecord,
    parse_commit_record,
)
from contrib_helper.selection.model import Commit
from contrib_helper.template.resolver import RepoId, TemplateReference
from contrib_helper.vcs.git_client import GitClient, GitError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


SHORT_HASH_LENGTH = 7


class CollectionError(Exception):
    """Raised when candidate commits cannot be enumerated or enriched."""

    pass


class UpstreamUnavailable(CollectionError):
    """Raised when the commit listing call fails."""

    pass


class MalformedResponse(CollectionError):
    """Raised when the commit listing itself has an unexpected shape."""

    pass


class EnrichmentFailed(CollectionError):
    """Raised when the touched files of a candidate cannot be read."""

    pass


def summary_line(message: str) -> str:
    """Return the first line of a commit message."""
    lines = message.strip().splitlines()
    return lines[0].strip() if lines else ""


class CommitCollector:
    """Build the ordered candidate set for a contribution.

    Parameters
    ----------
    hosting : GitHubClient
        Client used to list the commits of the current repository.
    git : GitClient
        Client for the local clone, used to read touched files.
    """

    def __init__(self, hosting: GitHubClient, git: GitClient) -> None:
        self.hosting = hosting
        self.git = git

    def collect(self, current_repo: RepoId, template_ref: TemplateReference) -> List[Commit]:
        """Return the commits newer than the template baseline, oldest first.

        Raises
        ------
        UpstreamUnavailable
            If the commit listing call fails.
        MalformedResponse
            If the listing is not a list of records. Individual malformed
            records are skipped with a warning instead.
        EnrichmentFailed
            If the touched files of a candidate cannot be read locally.
        """
        try:
            entries = self.hosting.list_commits(current_repo.slug)
        except MalformedRecord as exc:
            raise MalformedResponse(
                f"Unexpected commit listing for {current_repo.slug}: {exc}"
            ) from exc
        except HostingError as exc:
            raise UpstreamUnavailable(
                f"Could not list commits of {current_repo.slug}: {exc}"
            ) from exc

        records = []
        for position, entry in enumerate(entries):
            try:
                records.append(parse_commit_record(entry))
            except MalformedRecord as exc:
                logger.warning("Skipping malformed commit record #%d: %s", position, exc)

        baseline = template_ref.baseline_timestamp
        newer = [record for record in records if record.authored_at > baseline]
        logger.debug(
            "%d of %d commits in %s are newer than template baseline %s",
            len(newer),
            len(records),
            current_repo.slug,
            baseline.isoformat(),
        )

        # the API lists newest first; reverse before the stable sort so
        # that ties keep their original relative order
        newer.reverse()
        newer.sort(key=lambda record: record.authored_at)

        candidates = []
        for record in newer:
            try:
                files = self.git.changed_files(record.sha)
            except GitError as exc:
                raise EnrichmentFailed(
                    f"Could not read files of commit {record.sha[:SHORT_HASH_LENGTH]}: {exc}. "
                    f"Is your local clone up to date?"
                ) from exc
            candidates.append(
                Commit(
                    hash=record.sha,
                    short_hash=record.sha[:SHORT_HASH_LENGTH],
                    message=summary_line(record.message),
                    files=tuple(files),
                    author=record.author,
                    timestamp=record.authored_at,
                )
            )
        return candidates
