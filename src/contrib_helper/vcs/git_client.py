"""
Git client implementation for contrib_helper.

This module wraps the Git operations needed to turn a set of local
commits into a contribution branch on top of the template repository:
remote registration and fetching, branch creation, per-commit
cherry-picks and pushing. All subprocess calls go through
:meth:`GitClient._run` so that unit tests can mock them easily.
"""

from __future__ import annotations

import enum
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. The CLI re-enables propagation once logging is set up.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Markers git prints when a cherry-pick results in no change.
_EMPTY_MARKERS = (
    "is now empty",
    "nothing to commit",
    "allow-empty",
)


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class ApplyOutcome(enum.Enum):
    """Result of applying a single commit onto the current branch tip."""

    APPLIED = "applied"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class CherryPickResult:
    """Outcome of one ``git cherry-pick`` invocation."""

    outcome: ApplyOutcome
    detail: str = ""


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command cannot be started, or exits with a non-zero
            status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.error("Unable to execute git: %s", e)
            raise GitError(f"Unable to execute git: {e}") from e

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Repository inspection
    # ------------------------------------------------------------------
    def get_current_branch(self) -> str:
        """Return the name of the checked out branch (``HEAD`` if detached)."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], check=True)
        return result.stdout.strip()

    def branch_exists(self, branch_name: str) -> bool:
        """Return True if a local branch named ``branch_name`` exists."""
        result = self._run(["branch", "--list", branch_name], check=False)
        return bool(result.stdout.strip())

    def get_remote_url(self, name: str) -> Optional[str]:
        """Return the URL configured for remote ``name``, or None."""
        result = self._run(["remote", "get-url", name], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def changed_files(self, sha: str) -> List[str]:
        """List the paths touched by ``sha`` relative to its first parent.

        ``git diff-tree`` prints nothing for a root commit, so a commit
        without parents yields an empty list.
        """
        result = self._run(
            ["diff-tree", "--no-commit-id", "--name-only", "-r", sha], check=True
        )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def has_unmerged_paths(self) -> bool:
        """Return True if the index currently holds conflicted paths."""
        result = self._run(["diff", "--name-only", "--diff-filter=U"], check=False)
        return bool(result.stdout.strip())

    # ------------------------------------------------------------------
    # Remotes
    # ------------------------------------------------------------------
    def ensure_remote(self, name: str, url: str) -> None:
        """Make sure remote ``name`` exists and points at ``url``."""
        current = self.get_remote_url(name)
        if current is None:
            logger.debug("Adding remote %s -> %s", name, url)
            self._run(["remote", "add", name, url], check=True)
        elif current != url:
            logger.debug("Updating remote %s url to %s", name, url)
            self._run(["remote", "set-url", name, url], check=True)
        else:
            logger.debug("Remote %s already configured", name)

    def fetch(self, remote: str) -> None:
        """Fetch all refs of ``remote``."""
        self._run(["fetch", remote], check=True)

    # ------------------------------------------------------------------
    # Branch operations
    # ------------------------------------------------------------------
    def create_branch(self, branch_name: str, start_point: str) -> None:
        """Create ``branch_name`` at ``start_point`` and switch to it.

        Raises
        ------
        GitError
            If the branch already exists or the start point is unknown.
        """
        self._run(["checkout", "-b", branch_name, start_point], check=True)

    def push(self, target: str, local_branch: str, remote_branch: str) -> None:
        """Push ``local_branch`` to ``target`` as ``remote_branch``.

        ``target`` may be a remote name or a URL.
        """
        self._run(["push", target, f"{local_branch}:{remote_branch}"], check=True)

    # ------------------------------------------------------------------
    # Cherry-picking
    # ------------------------------------------------------------------
    def cherry_pick(self, sha: str) -> CherryPickResult:
        """Apply ``sha`` onto the current branch tip.

        A failed pick is classified as :attr:`ApplyOutcome.EMPTY` when git
        reports that the change is already present and no paths are left
        conflicted; every other failure is :attr:`ApplyOutcome.FAILED`.
        The in-progress cherry-pick state is left for the caller to skip
        or abort.
        """
        result = self._run(["cherry-pick", sha], check=False)
        if result.returncode == 0:
            return CherryPickResult(ApplyOutcome.APPLIED)

        output = f"{result.stdout}\n{result.stderr}".strip()
        lowered = output.lower()
        # git's empty-pick advice mentions "conflict resolution"; only the
        # index tells a real conflict apart
        if any(marker in lowered for marker in _EMPTY_MARKERS):
            if not self.has_unmerged_paths():
                logger.debug("Cherry-pick of %s is empty", sha)
                return CherryPickResult(ApplyOutcome.EMPTY, output)
        logger.debug("Cherry-pick of %s failed: %s", sha, output)
        return CherryPickResult(ApplyOutcome.FAILED, output)

    def skip_cherry_pick(self) -> None:
        """Drop the in-progress cherry-pick and move past it."""
        self._run(["cherry-pick", "--skip"], check=True)

    def abort_cherry_pick(self) -> None:
        """Abandon the in-progress cherry-pick, restoring the previous tip."""
        self._run(["cherry-pick", "--abort"], check=True)
