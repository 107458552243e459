"""
Interactive commit selection screen.

The screen is a thin driver around :class:`SelectionModel`: key presses
are mapped to :class:`Action` values, actions are applied to the model,
and the model is rendered to a list of lines by :func:`render`. Only
:func:`run_selection` touches the terminal, and it does so inside
:func:`terminal_session`, which restores the terminal on every exit path.
"""

from __future__ import annotations

import contextlib
import enum
import logging
import shutil
from typing import Callable, Dict, Iterator, List, Optional, Sequence

import click

from contrib_helper.selection.hints import classify_commit, contribution_hint
from contrib_helper.selection.model import Commit, Direction, SelectionModel


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


ENTER_ALT_SCREEN = "\x1b[?1049h\x1b[?25l"
LEAVE_ALT_SCREEN = "\x1b[?25h\x1b[?1049l"

HELP_LINE = "↑/↓ navigate · space toggle · a all · n none · i invert · enter chuck 'em back · q quit"

HEADER_LINES = 3
FOOTER_LINES = 2
MIN_LIST_ROWS = 3


class UserCancel(Exception):
    """Raised when the user quits the selection screen."""

    pass


class Action(enum.Enum):
    UP = "up"
    DOWN = "down"
    TOGGLE = "toggle"
    SELECT_ALL = "select_all"
    SELECT_NONE = "select_none"
    INVERT = "invert"
    CONFIRM = "confirm"
    QUIT = "quit"


KEY_BINDINGS: Dict[str, Action] = {
    # arrow keys: ANSI, application mode, Windows scan codes
    "\x1b[A": Action.UP,
    "\x1bOA": Action.UP,
    "\xe0H": Action.UP,
    "\x00H": Action.UP,
    "k": Action.UP,
    "\x1b[B": Action.DOWN,
    "\x1bOB": Action.DOWN,
    "\xe0P": Action.DOWN,
    "\x00P": Action.DOWN,
    "j": Action.DOWN,
    " ": Action.TOGGLE,
    "a": Action.SELECT_ALL,
    "n": Action.SELECT_NONE,
    "i": Action.INVERT,
    "\r": Action.CONFIRM,
    "\n": Action.CONFIRM,
    "q": Action.QUIT,
    "Q": Action.QUIT,
}


def apply_action(model: SelectionModel, action: Action) -> None:
    """Apply a navigation or selection action to ``model``.

    CONFIRM and QUIT end the loop and are handled by the caller.
    """
    if action is Action.UP:
        model.move(Direction.UP)
    elif action is Action.DOWN:
        model.move(Direction.DOWN)
    elif action is Action.TOGGLE:
        model.toggle_current()
    elif action is Action.SELECT_ALL:
        model.select_all()
    elif action is Action.SELECT_NONE:
        model.select_none()
    elif action is Action.INVERT:
        model.invert_selection()


def _truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    return text[: max(width - 1, 0)] + "…"


def _details(model: SelectionModel, width: int) -> List[str]:
    commit = model.current()
    lines = ["─" * width]
    if commit is None or model.cursor is None:
        return lines
    selected = model.is_selected(model.cursor)
    lines.extend(
        _truncate(line, width)
        for line in (
            f"commit {commit.hash}",
            f"Author: {commit.author}   Date: {commit.timestamp:%Y-%m-%d %H:%M %z}",
            f"Type:   {classify_commit(commit.message, commit.files)}",
            f"Files:  {commit.files_summary() or '(none)'}",
            f'"{contribution_hint(commit.message, selected)}"',
        )
    )
    return lines


def render(model: SelectionModel, width: int = 80, height: int = 24) -> List[str]:
    """Render the selection screen as a list of lines.

    The commit list scrolls so that the cursor row stays visible. The
    row under the cursor is emphasised with :func:`click.style`; use
    :func:`click.unstyle` to compare plain text.
    """
    total = len(model)
    lines = [
        "Chuck: sorting commits like a pro",
        "",
        f"Found {total} commit{'s' if total != 1 else ''} since template:",
    ]

    details = _details(model, width)
    rows = max(height - HEADER_LINES - len(details) - FOOTER_LINES, MIN_LIST_ROWS)
    cursor = model.cursor if model.cursor is not None else 0
    start = min(max(cursor - rows // 2, 0), max(total - rows, 0))

    for index in range(start, min(start + rows, total)):
        commit = model.commits[index]
        pointer = ">" if index == model.cursor else " "
        checkbox = "[x]" if model.is_selected(index) else "[ ]"
        row = _truncate(f"{pointer} {checkbox} {commit.short_hash} {commit.message}", width)
        if index == model.cursor:
            row = click.style(row, bold=True)
        elif model.is_selected(index):
            row = click.style(row, fg="green")
        lines.append(row)

    lines.extend(details)
    mode = "wrap" if model.wrap else "clamp"
    lines.append(_truncate(f"{model.selected_count}/{total} selected · cursor {mode}", width))
    lines.append(_truncate(HELP_LINE, width))
    return lines


@contextlib.contextmanager
def terminal_session() -> Iterator[None]:
    """Hold the alternate screen with a hidden cursor for the duration."""
    click.echo(ENTER_ALT_SCREEN, nl=False)
    try:
        yield
    finally:
        click.echo(LEAVE_ALT_SCREEN, nl=False)


def run_selection(
    commits: Sequence[Commit],
    wrap: bool = False,
    read_key: Optional[Callable[[], str]] = None,
) -> List[Commit]:
    """Let the user pick commits interactively.

    Returns the selected commits in chronological order. An empty
    candidate list returns immediately without touching the terminal.

    Raises
    ------
    UserCancel
        If the user quits (``q`` or Ctrl-C).
    """
    if not commits:
        return []
    model = SelectionModel(commits, wrap=wrap)
    read_key = read_key or click.getchar

    with terminal_session():
        while True:
            width, height = shutil.get_terminal_size()
            click.clear()
            click.echo("\n".join(render(model, width, height)))
            try:
                key = read_key()
            except (KeyboardInterrupt, EOFError) as exc:
                raise UserCancel("Selection interrupted") from exc

            action = KEY_BINDINGS.get(key)
            if action is None:
                logger.debug("Ignoring key %r", key)
                continue
            if action is Action.CONFIRM:
                break
            if action is Action.QUIT:
                raise UserCancel("Selection cancelled")
            apply_action(model, action)

    selected = model.selected()
    logger.debug("Selected %d of %d commits", len(selected), len(model))
    return selected
