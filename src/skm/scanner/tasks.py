"""Heuristic task-ledger extraction from free-form task-list markdown.

Each trimmed line is matched against ``LINE_RULES`` in order and counted by
the first rule that matches; lines matching no rule are ignored. The parser
never fails on content, it only undercounts.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from skm.errors import FilesystemError
from skm.models import TaskLedger
from skm.utils.time_utils import utc_from_timestamp

LOGGER = logging.getLogger(__name__)

UNCHECKED_PREFIXES: tuple[str, ...] = ("- [ ]", "* [ ]")
CHECKED_PREFIXES: tuple[str, ...] = ("- [x]", "- [X]", "* [x]", "* [X]")
CHECKBOX_PREFIXES: tuple[str, ...] = ("- [", "* [")

PARALLEL_MARKERS: tuple[str, ...] = ("[P]", "(P)", "||")
BLOCKED_MARKERS: tuple[str, ...] = ("[BLOCKED]", "🚫", "⛔")

TASK_ID_PATTERN = re.compile(r"T\d{3,4}:")
TASK_ID_COMPLETION_MARKERS: tuple[str, ...] = ("✅", "DONE", "[COMPLETE]", "[x]", "[X]")
TASK_ID_PARALLEL_MARKERS: tuple[str, ...] = ("[P]", "||")
TASK_ID_BLOCKED_MARKERS: tuple[str, ...] = ("[BLOCKED]", "🚫")

DONE_GLYPHS: tuple[str, ...] = ("✅", "☑")
OPEN_GLYPHS: tuple[str, ...] = ("⬜", "☐", "❌", "🔄")
TODO_PREFIXES: tuple[str, ...] = ("TODO:", "- TODO:")
DONE_PREFIXES: tuple[str, ...] = ("DONE:", "- DONE:")


@dataclass(frozen=True, slots=True)
class LineTally:
    """Counter increments contributed by one line."""

    total: int = 0
    completed: int = 0
    parallel_marked: int = 0
    blocked: int = 0


@dataclass(frozen=True, slots=True)
class LineRule:
    """A (predicate, effect) pair of the ordered line classifier."""

    name: str
    matches: Callable[[str], bool]
    tally: Callable[[str], LineTally]


def _contains_any(line: str, markers: tuple[str, ...]) -> bool:
    return any(marker in line for marker in markers)


def _is_task_id_line(line: str) -> bool:
    return ":" in line and not line.startswith(CHECKBOX_PREFIXES) and TASK_ID_PATTERN.search(line) is not None


def _unchecked_tally(line: str) -> LineTally:
    return LineTally(
        total=1,
        parallel_marked=int(_contains_any(line, PARALLEL_MARKERS)),
        blocked=int(_contains_any(line, BLOCKED_MARKERS)),
    )


def _checked_tally(line: str) -> LineTally:
    # Blocked markers are deliberately not checked on completed boxes.
    return LineTally(total=1, completed=1, parallel_marked=int(_contains_any(line, PARALLEL_MARKERS)))


def _task_id_tally(line: str) -> LineTally:
    return LineTally(
        total=1,
        completed=int(_contains_any(line, TASK_ID_COMPLETION_MARKERS)),
        parallel_marked=int(_contains_any(line, TASK_ID_PARALLEL_MARKERS)),
        blocked=int(_contains_any(line, TASK_ID_BLOCKED_MARKERS)),
    )


def _open_tally(_line: str) -> LineTally:
    return LineTally(total=1)


def _done_tally(_line: str) -> LineTally:
    return LineTally(total=1, completed=1)


# A colon line without a task id is not claimed by "task_id"; it falls through to the later rules.
LINE_RULES: tuple[LineRule, ...] = (
    LineRule("unchecked_checkbox", lambda line: line.startswith(UNCHECKED_PREFIXES), _unchecked_tally),
    LineRule("checked_checkbox", lambda line: line.startswith(CHECKED_PREFIXES), _checked_tally),
    LineRule("task_id", _is_task_id_line, _task_id_tally),
    LineRule("done_glyph", lambda line: line.startswith(DONE_GLYPHS), _done_tally),
    LineRule("open_glyph", lambda line: line.startswith(OPEN_GLYPHS), _open_tally),
    LineRule("todo_keyword", lambda line: line.startswith(TODO_PREFIXES), _open_tally),
    LineRule("done_keyword", lambda line: line.startswith(DONE_PREFIXES), _done_tally),
)


def classify_line(line: str) -> tuple[str | None, LineTally]:
    """Return the name of the first matching rule and its tally for one raw line."""

    trimmed = line.strip()
    for rule in LINE_RULES:
        if rule.matches(trimmed):
            return rule.name, rule.tally(trimmed)
    return None, LineTally()


def parse_task_text(text: str, last_activity: datetime | None = None) -> TaskLedger:
    """Build a task ledger from task-list document text."""

    total = 0
    completed = 0
    parallel_marked = 0
    blocked = 0
    # Only \n and \r\n end a line; other Unicode line separators stay inside it.
    for line in text.split("\n"):
        _, tally = classify_line(line.removesuffix("\r"))
        total += tally.total
        completed += tally.completed
        parallel_marked += tally.parallel_marked
        blocked += tally.blocked
    return TaskLedger(
        total=total,
        completed=completed,
        parallel_marked=parallel_marked,
        blocked=blocked,
        last_activity=last_activity,
    )


def parse_task_file(path: Path, logger: logging.Logger | None = None) -> TaskLedger:
    """Parse a task-list file; ``last_activity`` is the file modification time."""

    effective_logger = logger or LOGGER
    effective_logger.debug("tasks.parse_start path=%s", path)
    try:
        text = path.read_bytes().decode("utf-8", errors="replace")
        modified = utc_from_timestamp(path.stat().st_mtime)
    except OSError as exc:
        raise FilesystemError(path, exc) from exc

    ledger = parse_task_text(text, last_activity=modified)
    effective_logger.debug(
        "tasks.parsed path=%s total=%s completed=%s parallel=%s blocked=%s",
        path,
        ledger.total,
        ledger.completed,
        ledger.parallel_marked,
        ledger.blocked,
    )
    return ledger
