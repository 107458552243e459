"""
Candidate commit discovery.

See :mod:`contrib_helper.collect.collector` for the timestamp cut used
to decide which commits are newer than the template.
"""

from .collector import (  # noqa: F401
    CollectionError,
    CommitCollector,
    EnrichmentFailed,
    MalformedResponse,
    UpstreamUnavailable,
)
