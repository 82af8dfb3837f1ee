"""actionlens scan command - highlight server actions across a workspace."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
import structlog

from actionlens.cli.utils import LineIndex, display_path, find_repo_root
from actionlens.config.loader import load_config
from actionlens.config.models import ActionLensConfig, ResolutionBounds
from actionlens.core.errors import ConfigError
from actionlens.core.excludes import compile_exclude_patterns, iter_source_files
from actionlens.core.logging import configure_logging, get_logger
from actionlens.core.progress import pluralize, progress, status
from actionlens.correlate.engine import compute_highlights
from actionlens.correlate.models import CorrelationResult, ResolveFn, RuntimeControls
from actionlens.extraction.models import OffsetRange
from actionlens.resolve.chaser import make_resolve_fn
from actionlens.resolve.workspace import WorkspaceLocationProvider

def _log() -> structlog.stdlib.BoundLogger:
    """Logger resolved per call, after the command has configured logging."""
    return get_logger("cli.scan")


@dataclass
class FileReport:
    """Highlights computed for one file."""

    path: Path
    text: str
    result: CorrelationResult

    @property
    def empty(self) -> bool:
        return not (self.result.body_ranges or self.result.call_ranges)


def _bounds_with_overrides(bounds: ResolutionBounds, **overrides: int | None) -> ResolutionBounds:
    update = {k: v for k, v in overrides.items() if v is not None}
    return bounds.model_copy(update=update) if update else bounds


def collect_files(paths: tuple[Path, ...], repo_root: Path, config: ActionLensConfig) -> list[Path]:
    patterns = compile_exclude_patterns(config.files.exclude)
    targets = [p.resolve() for p in paths] or [repo_root]
    files: set[Path] = set()
    for target in targets:
        if not target.is_relative_to(repo_root):
            raise click.ClickException(f"'{target}' is outside the workspace root '{repo_root}'")
        files.update(
            iter_source_files(target, extensions=config.files.extensions, patterns=patterns)
        )
    return sorted(files)


async def scan_files(
    files: list[Path], resolve: ResolveFn, controls: RuntimeControls | None
) -> list[FileReport]:
    reports: list[FileReport] = []
    for path in progress(files, desc="Scanning"):
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            _log().warning("scan_file_unreadable", path=str(path), error=str(e))
            continue
        result = await compute_highlights(text, path.name, str(path), resolve, controls)
        reports.append(FileReport(path=path, text=text, result=result))
    return reports


def _range_json(index: LineIndex, span: OffsetRange) -> dict[str, Any]:
    return {"start": span.start, "end": span.end, "range": index.format_range(span)}


def _report_json(report: FileReport, repo_root: Path) -> dict[str, Any]:
    index = LineIndex(report.text)
    return {
        "path": display_path(report.path, repo_root),
        "body_ranges": [_range_json(index, s) for s in report.result.body_ranges],
        "icon_ranges": [_range_json(index, s) for s in report.result.icon_ranges],
        "call_ranges": [_range_json(index, s) for s in report.result.call_ranges],
        "stats": report.result.stats.to_dict(),
    }


def _print_reports(reports: list[FileReport], repo_root: Path) -> None:
    definitions: list[str] = []
    calls: list[str] = []
    for report in reports:
        index = LineIndex(report.text)
        shown = display_path(report.path, repo_root)
        definitions.extend(f"{shown}:{index.format_range(s)}" for s in report.result.body_ranges)
        calls.extend(f"{shown}:{index.format_range(s)}" for s in report.result.call_ranges)

    if definitions:
        click.echo("definitions")
        for line in definitions:
            click.echo(f"  {line}")
    if calls:
        click.echo("calls")
        for line in calls:
            click.echo(f"  {line}")


@click.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root (default: nearest .actionlens or .git directory)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--unbounded", is_flag=True, help="Resolve every candidate without bounds")
@click.option("--max-concurrent", type=click.IntRange(min=1), help="Oracle calls in flight at once")
@click.option("--budget-ms", type=click.IntRange(min=1), help="Admission budget per file")
@click.option("--timeout-ms", type=click.IntRange(min=1), help="Timeout of a single resolution")
@click.option("--max-resolutions", type=click.IntRange(min=1), help="Resolutions per file")
@click.pass_context
def scan_command(
    ctx: click.Context,
    paths: tuple[Path, ...],
    root: Path | None,
    as_json: bool,
    unbounded: bool,
    max_concurrent: int | None,
    budget_ms: int | None,
    timeout_ms: int | None,
    max_resolutions: int | None,
) -> None:
    """Find server action bodies and the call sites that reach them.

    PATHS are files or directories inside the workspace (default: the root).
    """
    repo_root = (root or find_repo_root(paths[0] if paths else None)).resolve()
    try:
        config = load_config(repo_root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if not (ctx.obj or {}).get("verbose"):
        configure_logging(config=config.logging)

    files = collect_files(paths, repo_root, config)
    bounds = _bounds_with_overrides(
        config.bounds,
        max_concurrent=max_concurrent,
        per_pass_budget_ms=budget_ms,
        resolve_timeout_ms=timeout_ms,
        max_resolutions=max_resolutions,
    )
    controls = None if unbounded else RuntimeControls(bounds=bounds)
    provider = WorkspaceLocationProvider(repo_root)
    resolve = make_resolve_fn(provider, max_hops=config.resolver.max_hops)

    _log().debug("scan_started", root=str(repo_root), files=len(files), unbounded=unbounded)
    reports = asyncio.run(scan_files(files, resolve, controls))

    if as_json:
        payload = {
            "root": str(repo_root),
            "files": [_report_json(r, repo_root) for r in reports if not r.empty],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    _print_reports(reports, repo_root)
    bodies = sum(len(r.result.body_ranges) for r in reports)
    calls = sum(len(r.result.call_ranges) for r in reports)
    status(
        f"{pluralize(len(files), 'file')} scanned: "
        f"{pluralize(bodies, 'action')}, {pluralize(calls, 'call site')}",
        style="success",
    )
