"""Main CLI application entry point.

Defines the Typer application, global options and logging set-up.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from gravekeeper import __version__
from gravekeeper.cli.commands import (
    banish,
    config,
    graveyard,
    log,
    purge,
    restore,
    scan,
    undo,
    whitelist,
)
from gravekeeper.utils.formatting import err_console

app = typer.Typer(
    name="gravekeeper",
    help="Find stale, duplicate and oversized files and move them to a reversible graveyard.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"gravekeeper version {__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool, quiet: bool) -> None:
    """Route the package logger through Rich on stderr.

    Args:
        verbose: Log at DEBUG.
        quiet: Only log errors.
    """
    logger = logging.getLogger("gravekeeper")
    if logger.handlers:
        logger.handlers.clear()

    handler = RichHandler(console=err_console, show_time=False, show_path=False)
    logger.addHandler(handler)
    logger.propagate = False

    if verbose:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.ERROR)
    else:
        logger.setLevel(logging.WARNING)


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Settings file (default: ~/.config/gravekeeper/config.toml).",
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """gravekeeper - reclaim disk space without deleting anything.

    Scan a folder for Ghosts (stale files), Zombies (duplicates) and
    Demons (oversized files), banish them to the graveyard, and bring
    them back whenever you change your mind.
    """
    setup_logging(verbose, quiet)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path


# Register commands
app.command(name="scan")(scan.scan)
app.command(name="banish")(banish.banish)
app.command(name="purge")(purge.purge)
app.command(name="restore")(restore.restore)
app.command(name="undo")(undo.undo)
app.command(name="log")(log.show_log)
app.add_typer(graveyard.app, name="graveyard")
app.add_typer(whitelist.app, name="whitelist")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
