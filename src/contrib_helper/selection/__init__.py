"""
Commit selection.

This package provides the :class:`SelectionModel` state machine, the
hints shown for each commit, and the interactive terminal screen that
drives the model. See :mod:`contrib_helper.selection.model` and
:mod:`contrib_helper.selection.terminal` for details.
"""

from .hints import classify_commit, contribution_hint  # noqa: F401
from .model import Commit, Direction, SelectionModel  # noqa: F401
from .terminal import UserCancel, run_selection  # noqa: F401
