"""Banish command implementation.

Moves individual files into the graveyard.
"""

from pathlib import Path
from typing import Annotated

import typer

from gravekeeper.cli.shared import open_engine
from gravekeeper.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)


def banish(
    ctx: typer.Context,
    paths: Annotated[
        list[Path],
        typer.Argument(help="Files to move into the graveyard."),
    ],
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt.",
        ),
    ] = False,
) -> None:
    """Move files into the graveyard.

    Nothing is deleted: every banished file can be restored with
    `gravekeeper undo` or `gravekeeper restore`.

    Examples:
        gravekeeper banish ~/Downloads/old.iso
        gravekeeper banish a.log b.log -y
    """
    targets = [path.expanduser() for path in paths]

    if not yes:
        console.print(f"\n[bold]Banish {len(targets)} file(s):[/bold]")
        for path in targets[:10]:
            console.print(f"  - {path}")
        if len(targets) > 10:
            console.print(f"  ... and {len(targets) - 10} more")
        if not typer.confirm("Move these files to the graveyard?"):
            print_info("Cancelled.")
            return

    failed = 0
    with open_engine(ctx) as engine:
        for path in targets:
            result = engine.banish(path)
            if not result.success:
                failed += 1
                print_error(result.error or f"Failed to banish {path}")
                continue
            if not result.logged:
                print_warning(result.error or f"{path} was moved but not logged")
            console.print(
                f"  [banish]banished[/] {result.path} -> [muted]{result.graveyard_path}[/]"
            )

    if failed:
        print_warning(f"{len(targets) - failed} banished, {failed} failed")
        raise typer.Exit(code=1)
    print_success(f"Banished {len(targets)} file(s). Use 'gravekeeper undo' to bring them back.")
