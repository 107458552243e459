"""
Hosting platform integration for contrib_helper.

This package contains the :class:`GitHubClient` used to resolve
repository identities, read the template's branch head and list the
commits of the current repository.
"""

from .github_client import (  # noqa: F401
    CommitRecord,
    GitHubClient,
    HostingError,
    MalformedResponse,
    RepositoryInfo,
    parse_commit_record,
)
