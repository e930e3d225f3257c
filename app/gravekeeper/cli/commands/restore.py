"""Restore command implementation.

Moves one file out of the graveyard.
"""

from pathlib import Path
from typing import Annotated

import typer

from gravekeeper.cli.shared import open_engine
from gravekeeper.utils.formatting import print_error, print_success


def restore(
    ctx: typer.Context,
    graveyard_path: Annotated[
        Path,
        typer.Argument(help="File inside the graveyard."),
    ],
    original: Annotated[
        Path | None,
        typer.Argument(help="Where to put it (default: where it came from)."),
    ] = None,
) -> None:
    """Restore a file from the graveyard.

    An existing file at the destination is never overwritten.

    Examples:
        gravekeeper restore ~/.local/share/gravekeeper/graveyard/home/me/a.iso
        gravekeeper restore <graveyard-file> ~/Desktop/a.iso
    """
    with open_engine(ctx) as engine:
        result = engine.restore(
            graveyard_path.expanduser(),
            original.expanduser() if original is not None else None,
        )

    if not result.success:
        print_error(result.error or "Restore failed")
        if result.is_conflict:
            print_error("Move or rename the existing file, then try again.")
        raise typer.Exit(code=1)

    print_success(f"Restored {result.restored_path}")
