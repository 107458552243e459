"""
Template repository resolution.

See :mod:`contrib_helper.template.resolver` for how the template URL is
normalized and how its baseline commit is captured.
"""

from .resolver import (  # noqa: F401
    NoTemplateConfigured,
    RepoId,
    ResolutionError,
    TemplateReference,
    TemplateResolver,
    UnsupportedUrlFormat,
    UpstreamUnavailable,
    parse_repo_url,
    resolve_current_repo,
)
