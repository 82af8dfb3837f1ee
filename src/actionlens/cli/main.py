"""actionlens CLI."""

import click

from actionlens import __version__
from actionlens.cli.definitions import definitions_command
from actionlens.cli.scan import scan_command
from actionlens.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="actionlens")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """actionlens - highlight server actions and the calls that reach them."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(scan_command, name="scan")
cli.add_command(definitions_command, name="definitions")


if __name__ == "__main__":
    cli()
