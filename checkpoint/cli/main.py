"""Main CLI entry point for Checkpoint."""

import logging
import sys

import click

from checkpoint import __version__
from checkpoint.cli.output import console
from checkpoint.cli.service_cmd import service
from checkpoint.exceptions import CheckpointError


def _setup_logging(debug: bool = False) -> None:
    """Configure logging; native tool noise only shows with --debug."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.option("--debug/--no-debug", default=False, help="Show debug information")
@click.version_option(__version__, prog_name="checkpoint")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Checkpoint - backup automation for developer machines."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    _setup_logging(debug)


# Register commands
cli.add_command(service)


def main() -> None:
    """Main entry point with error handling."""
    try:
        cli()
    except CheckpointError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        if "--debug" in sys.argv:
            raise
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
