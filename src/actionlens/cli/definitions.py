"""actionlens definitions command - list server actions in one file."""

from __future__ import annotations

import json
from pathlib import Path

import click

from actionlens.cli.utils import LineIndex
from actionlens.extraction.definitions import extract_definitions
from actionlens.extraction.models import OffsetRange


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def definitions_command(path: Path, as_json: bool) -> None:
    """Print the server action definitions found in PATH."""
    text = path.read_text(encoding="utf-8", errors="replace")
    spans = extract_definitions(text, path.name)
    index = LineIndex(text)

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "name": span.name,
                        "body_start": span.body_start,
                        "body_end": span.body_end,
                        "name_start": span.name_start,
                        "name_end": span.name_end,
                        "range": index.format_range(span.body),
                    }
                    for span in spans
                ],
                indent=2,
            )
        )
        return

    for span in spans:
        where = index.format_range(span.body)
        if span.name_start is not None and span.name_end is not None:
            where = index.format_range(OffsetRange(span.name_start, span.body_end))
        click.echo(f"{path.as_posix()}:{where} {span.name}")
