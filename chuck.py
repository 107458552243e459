#!/usr/bin/env python
"""
Thin wrapper script to invoke the contrib_helper CLI.

Running ``python chuck.py`` is equivalent to running the ``chuck``
console script installed via ``pyproject.toml``.
"""

from contrib_helper.cli import main


if __name__ == "__main__":
    main(prog_name="chuck")
