"""
Configuration loader for contrib_helper.

The tool reads a TOML file named ``.chuckrc`` from the root of the
repository being worked on. The file names the template repository the
project was derived from::

    [template]
    url = "git@github.com:your-org/your-template.git"

Optional sections tune the selection screen (``[selection]``), the
contribution branch (``[publish]``) and the hosting API (``[hosting]``).
This loader validates the types of every known key and returns a
dictionary with defaults filled in. A missing or malformed file raises
:class:`ConfigError`. The ``template.url`` key itself is optional here;
its absence is reported when the template is resolved.
"""

from __future__ import annotations

import copy
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILENAME = ".chuckrc"

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "template": {},
    "selection": {"wrap": False},
    "publish": {"remote_name": "chuck-template", "branch_prefix": "contrib"},
    "hosting": {"request_timeout": 30, "max_pages": 10},
}

# (section, key) -> accepted types
_SCHEMA: Dict[tuple, tuple] = {
    ("template", "url"): (str,),
    ("template", "branch"): (str,),
    ("selection", "wrap"): (bool,),
    ("publish", "remote_name"): (str,),
    ("publish", "branch_prefix"): (str,),
    ("hosting", "api_url"): (str,),
    ("hosting", "request_timeout"): (int, float),
    ("hosting", "max_pages"): (int,),
}

_TYPE_NAMES = {str: "a string", bool: "a boolean", int: "an integer", float: "a number"}

EXAMPLE_CONFIG = (
    "[template]\n"
    'url = "git@github.com:your-org/your-template.git"'
)


class ConfigError(Exception):
    """Raised when the ``.chuckrc`` configuration file is missing or invalid."""

    pass


def config_path_for(repo_root: Path) -> Path:
    """Return the location of the configuration file for ``repo_root``."""
    return repo_root / CONFIG_FILENAME


def _check_type(section: str, key: str, value: Any) -> None:
    expected = _SCHEMA[(section, key)]
    # bool is a subclass of int; never accept it for numeric keys
    if isinstance(value, bool) and bool not in expected:
        ok = False
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise ConfigError(f"'{section}.{key}' must be {_TYPE_NAMES[expected[0]]}")


def load_config(repo_root: Path, config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load and validate the project configuration.

    Args:
        repo_root: Root of the repository; ``.chuckrc`` is looked up here
                   unless ``config_path`` is given.
        config_path: Explicit path to a configuration file.

    Returns:
        A dictionary with the sections ``template``, ``selection``,
        ``publish`` and ``hosting``. Unknown keys are preserved.

    Raises:
        ConfigError: If the file is missing, is not valid TOML, or a known
                     key has the wrong type.
    """
    path = config_path or config_path_for(repo_root)

    if not path.exists():
        logger.error("Configuration file '%s' does not exist", path)
        raise ConfigError(
            f"No {path.name} file found at {path}.\n"
            f"Add one naming your template repository:\n{EXAMPLE_CONFIG}"
        )

    try:
        data: Dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc

    config = copy.deepcopy(DEFAULTS)
    for section, values in data.items():
        if section in DEFAULTS and not isinstance(values, dict):
            raise ConfigError(f"'{section}' must be a table")
        if isinstance(values, dict):
            config.setdefault(section, {}).update(values)
        else:
            config[section] = values

    for (section, key) in _SCHEMA:
        if key in config[section]:
            _check_type(section, key, config[section][key])

    if config["hosting"]["max_pages"] < 1:
        raise ConfigError("'hosting.max_pages' must be at least 1")
    if config["hosting"]["request_timeout"] <= 0:
        raise ConfigError("'hosting.request_timeout' must be positive")
    for key in ("remote_name", "branch_prefix"):
        if not config["publish"][key].strip():
            raise ConfigError(f"'publish.{key}' must not be empty")

    logger.debug("Loaded configuration from: %s", path)
    logger.debug("Configuration data: %s", config)
    return config
