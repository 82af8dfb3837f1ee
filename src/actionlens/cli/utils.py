"""CLI utilities."""

from __future__ import annotations

from bisect import bisect_right
from pathlib import Path

from actionlens.extraction.models import OffsetRange

_ROOT_MARKERS = (".actionlens", ".git")


def find_repo_root(start_path: Path | None = None) -> Path:
    """Find the workspace root from the given path.

    Walks up the directory tree looking for an .actionlens or .git directory.
    Falls back to start_path itself (or the current directory) when neither
    is found, so loose folders can still be scanned.
    """
    if start_path is None:
        start_path = Path.cwd()
    start = start_path.resolve()
    if start.is_file():
        start = start.parent

    current = start
    while True:
        if any((current / marker).exists() for marker in _ROOT_MARKERS):
            return current
        if current == current.parent:
            return start
        current = current.parent


class LineIndex:
    """Converts str offsets to 1-based line:column pairs."""

    def __init__(self, text: str) -> None:
        self._starts = [0]
        self._starts.extend(i + 1 for i, ch in enumerate(text) if ch == "\n")

    def position(self, offset: int) -> tuple[int, int]:
        line = bisect_right(self._starts, offset) - 1
        return line + 1, offset - self._starts[line] + 1

    def format_range(self, span: OffsetRange) -> str:
        start_line, start_col = self.position(span.start)
        end_line, end_col = self.position(span.end)
        return f"{start_line}:{start_col}-{end_line}:{end_col}"


def display_path(path: Path, root: Path) -> str:
    """Path relative to root when possible, '/'-separated."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
