"""
Version detection for contrib_helper.

An installed distribution reports the version recorded in its metadata.
A source checkout that is not installed derives the version from the
closest release tag of the checkout itself::

    v0.3-0-gabc1234 -> 0.3
    v0.3-5-gabc1234 -> 0.3.dev5+gabc1234
"""

import re
import subprocess
from importlib import metadata
from pathlib import Path
from typing import Optional


DISTRIBUTION = "chuck"

_DESCRIBE = re.compile(r"^v(?P<release>\d+(?:\.\d+)*)-(?P<distance>\d+)-g(?P<sha>[0-9a-f]+)$")


def describe_checkout(repo_path: Optional[Path] = None) -> Optional[str]:
    """Return ``git describe`` output for the checkout, or None."""
    cmd = ["git", "describe", "--tags", "--long", "--match", "v*"]
    try:
        result = subprocess.run(
            cmd,
            cwd=repo_path or Path(__file__).resolve().parent,
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
    return result.stdout.strip() or None


def version_from_describe(described: str, base_version: str) -> str:
    """Turn ``git describe --long`` output into a PEP 440 version."""
    match = _DESCRIBE.match(described)
    if not match:
        return f"{base_version}.dev0"
    release = match.group("release")
    if match.group("distance") == "0":
        return release
    return f"{release}.dev{match.group('distance')}+g{match.group('sha')}"


def generate_version(base_version: str, repo_path: Optional[Path] = None) -> str:
    """Return the version of the running code."""
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        pass
    described = describe_checkout(repo_path)
    if described is None:
        return f"{base_version}.dev0"
    return version_from_describe(described, base_version)
