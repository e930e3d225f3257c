"""Whitelist commands.

Spared paths are never tagged again by later scans.
"""

import json
import os
from pathlib import Path
from typing import Annotated

import typer

from gravekeeper.cli.shared import open_engine
from gravekeeper.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage files spared from classification.",
    no_args_is_help=True,
)


@app.command()
def add(
    ctx: typer.Context,
    paths: Annotated[
        list[Path],
        typer.Argument(help="Files to spare."),
    ],
) -> None:
    """Resurrect files: whitelist them and record it in the log."""
    with open_engine(ctx) as engine:
        for path in paths:
            try:
                normalized = engine.resurrect(path)
            except OSError as e:
                print_error(f"Failed to update whitelist: {e}")
                raise typer.Exit(code=1) from None
            print_success(f"Spared {normalized}")


@app.command()
def remove(
    ctx: typer.Context,
    paths: Annotated[
        list[Path],
        typer.Argument(help="Files to stop sparing."),
    ],
) -> None:
    """Remove files from the whitelist."""
    with open_engine(ctx) as engine:
        for path in paths:
            normalized = os.path.abspath(path.expanduser())
            if not engine.whitelist.has(normalized):
                print_info(f"Not whitelisted: {normalized}")
                continue
            try:
                engine.whitelist.remove(normalized)
            except OSError as e:
                print_error(f"Failed to update whitelist: {e}")
                raise typer.Exit(code=1) from None
            print_success(f"Removed {normalized}")


@app.command(name="list")
def list_whitelist(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """List whitelisted files."""
    with open_engine(ctx) as engine:
        files = engine.whitelist.all()

    if json_output:
        console.print_json(json.dumps(files))
        return

    if not files:
        print_info("The whitelist is empty.")
        return

    for path in files:
        console.print(path)
