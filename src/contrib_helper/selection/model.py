"""
Data models for commit selection.

:class:`Commit` is an immutable record of one candidate commit.
:class:`SelectionModel` holds the candidate list together with a cursor
and one selection flag per candidate. It performs no I/O and does not
know how it is rendered, so every interaction can be replayed in tests
as a plain sequence of method calls.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Commit:
    """Representation of a candidate commit.

    Attributes
    ----------
    hash : str
        Full commit identifier.
    short_hash : str
        Display prefix of the identifier.
    message : str
        Summary line of the commit message.
    files : Tuple[str, ...]
        Paths touched by the commit, relative to the repository root.
    author : str
        Author name.
    timestamp : datetime
        Author date, timezone aware.
    """

    hash: str
    short_hash: str
    message: str
    files: Tuple[str, ...]
    author: str
    timestamp: datetime

    def files_summary(self) -> str:
        """Collapse the file list for single-line display."""
        if len(self.files) <= 3:
            return ", ".join(self.files)
        return f"{', '.join(self.files[:2])} and {len(self.files) - 2} more"


class Direction(enum.IntEnum):
    UP = -1
    DOWN = 1


class SelectionModel:
    """Cursor and selection flags over an ordered list of commits.

    Parameters
    ----------
    commits : Sequence[Commit]
        Candidates in chronological order. The order is never changed.
    wrap : bool, optional
        When True, moving past either end wraps around to the other end.
        When False (the default) the cursor stops at the ends.
    """

    def __init__(self, commits: Sequence[Commit], wrap: bool = False) -> None:
        self._commits: Tuple[Commit, ...] = tuple(commits)
        self._flags: List[bool] = [False] * len(self._commits)
        self._cursor: Optional[int] = 0 if self._commits else None
        self.wrap = wrap

    def __len__(self) -> int:
        return len(self._commits)

    @property
    def commits(self) -> Tuple[Commit, ...]:
        return self._commits

    @property
    def cursor(self) -> Optional[int]:
        """Index of the commit under the cursor, or None when empty."""
        return self._cursor

    def current(self) -> Optional[Commit]:
        if self._cursor is None:
            return None
        return self._commits[self._cursor]

    def is_selected(self, index: int) -> bool:
        return self._flags[index]

    @property
    def selected_count(self) -> int:
        return sum(self._flags)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def move(self, direction: Direction) -> None:
        """Move the cursor one step, clamping or wrapping at the ends."""
        if self._cursor is None:
            return
        target = self._cursor + int(direction)
        if self.wrap:
            self._cursor = target % len(self._commits)
        else:
            self._cursor = min(max(target, 0), len(self._commits) - 1)

    def move_up(self) -> None:
        self.move(Direction.UP)

    def move_down(self) -> None:
        self.move(Direction.DOWN)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def toggle_current(self) -> None:
        if self._cursor is None:
            return
        self._flags[self._cursor] = not self._flags[self._cursor]

    def select_all(self) -> None:
        self._flags = [True] * len(self._commits)

    def select_none(self) -> None:
        self._flags = [False] * len(self._commits)

    def invert_selection(self) -> None:
        self._flags = [not flag for flag in self._flags]

    def selected(self) -> List[Commit]:
        """Return the selected commits in candidate (chronological) order."""
        return [commit for commit, flag in zip(self._commits, self._flags) if flag]
