"""
Configuration loading for contrib_helper.

Provides a loader for the ``.chuckrc`` file located in the repository
root. See :mod:`contrib_helper.config.loader` for implementation details.
"""

from .loader import ConfigError, load_config  # noqa: F401
