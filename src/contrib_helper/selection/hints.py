"""
Heuristics for describing candidate commits on the selection screen.

:func:`classify_commit` infers a Conventional Commit type from the
commit summary and the touched paths. :func:`contribution_hint` turns
the summary and the current selection flag into a one-line verdict on
whether the change looks like something the template would want. Both
are deterministic so that they can be unit tested without a terminal.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Iterable


_CONVENTIONAL_PREFIX = re.compile(
    r"^(?P<type>feat|fix|docs|style|refactor|perf|test|build|ci|chore|revert)(\([^)]*\))?!?:",
    re.IGNORECASE,
)


def _classify_path(file_path: str) -> str:
    path = PurePosixPath(file_path)
    ext = path.suffix.lower()
    if ext in {".md", ".rst", ".txt", ".adoc"}:
        return "docs"
    if path.name.startswith("test_") or path.name.endswith("_test.py") or "tests" in path.parts:
        return "test"
    if ".github" in path.parts:
        return "ci"
    if path.name in {"Dockerfile", "docker-compose.yml", "Makefile"} or ext in {".yaml", ".yml", ".toml"}:
        return "build"
    return "other"


def classify_commit(message: str, files: Iterable[str]) -> str:
    """Classify a commit into a Conventional Commit type.

    An explicit Conventional Commit prefix in ``message`` wins. Otherwise
    keywords in the message are checked, and finally the touched paths:
    if every path falls in the same documentation, test, CI or build
    category, that category is returned. The fallback is ``other``.
    """
    match = _CONVENTIONAL_PREFIX.match(message.strip())
    if match:
        return match.group("type").lower()

    if re.search(r"\b(fix(e[ds])?|bug|hotfix|patch)\b", message, re.IGNORECASE):
        return "fix"
    if re.search(r"\brefactor", message, re.IGNORECASE):
        return "refactor"
    if re.search(r"\b(perf(ormance)?|optimi[sz]e|speed up|faster)\b", message, re.IGNORECASE):
        return "perf"
    if re.search(r"\b(add(s|ed)?|feat(ure)?|introduce|implement)\b", message, re.IGNORECASE):
        return "feat"

    kinds = {_classify_path(path) for path in files}
    if len(kinds) == 1:
        return kinds.pop()
    return "other"


def contribution_hint(message: str, selected: bool) -> str:
    """Return a short verdict on a commit for the details panel."""
    lowered = message.lower()
    if selected:
        if "fix" in lowered or "bug" in lowered:
            return "That's a keeper - everyone needs that fix"
        if "add" in lowered and ("util" in lowered or "helper" in lowered):
            return "Yep, chuck that back to template"
        if "improve" in lowered or "optimize" in lowered:
            return "That's good stuff right there"
        return "That's a keeper right there"
    if "config" in lowered or "deploy" in lowered:
        return "Nah, that stays with your app"
    if "app" in lowered or "business" in lowered:
        return "That's your problem, not theirs"
    return "Keep that one to yourself, kiddo"
