"""
Version control system (VCS) integration.

This package contains the Git client used to inspect local history,
register the template remote, build the contribution branch with
cherry-picks and push it upstream.
"""

from .git_client import ApplyOutcome, CherryPickResult, GitClient, GitError  # noqa: F401
