"""Terminal feedback for humans watching a scan.

Results go to stdout through click. Everything here writes to stderr and
falls back to plain iteration when stderr is not a TTY.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

# Small scans finish before a bar is worth drawing
_BAR_MIN_ITEMS = 50

_stderr = Console(stderr=True)

_MARKS = {"success": "[green]✓[/green] ", "info": "  "}

_live = threading.local()

T = TypeVar("T")


def is_console_suppressed() -> bool:
    return getattr(_live, "active", False)


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Mute console log handlers for the duration of a live display."""
    _live.active = True
    try:
        yield
    finally:
        _live.active = False


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def status(message: str, *, style: str = "info") -> None:
    _stderr.print(f"{_MARKS.get(style, '')}{message}", highlight=False)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """'1 file', '3 files'."""
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"


def progress(iterable: Iterable[T], *, desc: str = "Scanning") -> Iterator[T]:
    """Yield from iterable, drawing a transient bar for large sized inputs on a TTY."""
    total = len(iterable) if hasattr(iterable, "__len__") else None  # type: ignore[arg-type]
    if total is None or total <= _BAR_MIN_ITEMS or not _is_tty():
        yield from iterable
        return

    columns = (
        TextColumn("    {task.description}:"),
        BarColumn(bar_width=25, style="cyan", complete_style="cyan"),
        TaskProgressColumn(),
        TextColumn("{task.completed}/{task.total} files"),
    )
    with suppress_console_logs(), Progress(*columns, console=_stderr, transient=True) as bar:
        task_id = bar.add_task(desc, total=total)
        for item in iterable:
            yield item
            bar.advance(task_id)
