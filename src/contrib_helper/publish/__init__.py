"""
Contribution publishing.

See :mod:`contrib_helper.publish.publisher` for the branch creation,
replay and push sequence.
"""

from .publisher import (  # noqa: F401
    Branch,
    BranchCreateFailed,
    ContributionPublisher,
    FetchFailed,
    PublishError,
    PublishState,
    PushFailed,
    ReplayFailed,
    ReplayStatus,
    ReplayStep,
    pull_request_url,
)
