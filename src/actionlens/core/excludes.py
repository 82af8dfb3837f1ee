"""File exclusion for highlighting passes.

Two tiers:

Tier 0 (PRUNABLE_DIRS): directories never traversed when scanning a
workspace (VCS internals, dependencies, framework build output).

Tier 1 (exclude patterns): regular expressions matched against the
normalized ('/'-separated) path of a single file. Matching files bypass the
Correlator entirely. Invalid patterns are skipped one by one so a single
typo does not disable the rest of the list.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

import structlog

logger = structlog.get_logger()

PRUNABLE_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        # JavaScript/Node.js ecosystem
        "node_modules",
        ".npm",
        ".yarn",
        ".pnpm-store",
        "bower_components",
        ".next",  # Next.js build
        ".turbo",  # Turborepo cache
        ".vercel",
        # Generic build/output directories
        "dist",
        "build",
        "out",
        "coverage",
        ".nyc_output",
        # Misc caches
        ".cache",
        # actionlens data
        ".actionlens",
    )
)

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    r"\.(stories|story)\.[tj]sx?$",
    r"\.(test|spec)\.[tj]sx?$",
    r"/__tests__/",
    r"/\.storybook/",
)

SOURCE_EXTENSIONS: frozenset[str] = frozenset(
    {".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs"}
)


def is_prunable_dir(dirname: str) -> bool:
    """Check if a directory is never traversed during workspace scans."""
    return dirname in PRUNABLE_DIRS


def compile_exclude_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile exclusion regexes, dropping invalid ones individually."""
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.warning("exclude_pattern_invalid", pattern=pattern, error=str(e))
    return compiled


def normalize_path(path: str | Path) -> str:
    return str(path).replace("\\", "/")


def is_excluded_path(
    path: str | Path,
    patterns: Iterable[re.Pattern[str]] | None = None,
) -> bool:
    """Return True when any pattern matches the normalized path.

    Uses DEFAULT_EXCLUDE_PATTERNS when no compiled patterns are given.
    """
    compiled = (
        list(patterns)
        if patterns is not None
        else compile_exclude_patterns(DEFAULT_EXCLUDE_PATTERNS)
    )
    normalized = normalize_path(path)
    return any(p.search(normalized) for p in compiled)


def iter_source_files(
    root: Path,
    *,
    extensions: Iterable[str] = SOURCE_EXTENSIONS,
    patterns: Iterable[re.Pattern[str]] | None = None,
) -> list[Path]:
    """List analysable source files under root, sorted for determinism.

    Prunes PRUNABLE_DIRS and drops files matched by the exclusion patterns.
    """
    wanted = {ext.lower() for ext in extensions}
    compiled = (
        list(patterns)
        if patterns is not None
        else compile_exclude_patterns(DEFAULT_EXCLUDE_PATTERNS)
    )

    if root.is_file():
        candidates = [root]
    else:
        candidates = []
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                entries = list(current.iterdir())
            except OSError as e:
                logger.warning("scan_dir_unreadable", path=str(current), error=str(e))
                continue
            for entry in entries:
                if entry.is_dir():
                    if not is_prunable_dir(entry.name) and not entry.is_symlink():
                        stack.append(entry)
                elif entry.is_file():
                    candidates.append(entry)

    files = [
        f
        for f in candidates
        if f.suffix.lower() in wanted and not is_excluded_path(f, compiled)
    ]
    return sorted(files)


__all__ = [
    "PRUNABLE_DIRS",
    "DEFAULT_EXCLUDE_PATTERNS",
    "SOURCE_EXTENSIONS",
    "is_prunable_dir",
    "compile_exclude_patterns",
    "normalize_path",
    "is_excluded_path",
    "iter_source_files",
]
