"""
Top-level package for contrib_helper.

contrib_helper powers the ``chuck`` command, which picks commits made in
a repository derived from a template and proposes them back to the
template as a pull-request branch. The CLI entry point lives in
``contrib_helper.cli``.
"""

__all__ = ["__version__", "__base_version__"]

__base_version__ = "0.1"

from contrib_helper._version import generate_version  # noqa: E402

__version__ = generate_version(__base_version__)
