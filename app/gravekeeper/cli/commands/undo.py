"""Undo command for reversing the last banish.

This module provides the `gravekeeper undo` command. It works from the
graveyard log alone, so it can undo a banish or swift purge made by an
earlier invocation.
"""

from typing import Annotated

import typer

from gravekeeper.cli.shared import open_engine
from gravekeeper.models.log_entry import LogEntry
from gravekeeper.utils.formatting import (
    console,
    format_size,
    print_error,
    print_info,
    print_success,
)


def undo(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be undone without executing.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt.",
        ),
    ] = False,
) -> None:
    """Undo the last banish or swift purge.

    Examples:
        gravekeeper undo              # Undo with confirmation
        gravekeeper undo --dry-run    # Preview only
        gravekeeper undo -y           # Skip confirmation
    """
    with open_engine(ctx) as engine:
        entries = engine.pending_undo()
        if not entries:
            print_info("The graveyard is empty. Nothing to undo.")
            return

        _show_undo_preview(entries)

        if dry_run:
            print_info("[dry-run] No changes made.")
            return

        if not yes and not typer.confirm("Do you want to undo this?"):
            print_info("Cancelled.")
            return

        results = engine.undo_last()

    failed = [r for r in results if not r.success]
    for result in failed:
        print_error(result.error or f"Failed to restore {result.graveyard_path}")

    if failed:
        print_error(f"{len(results) - len(failed)} restored, {len(failed)} failed.")
        raise typer.Exit(code=1)
    print_success(f"Restored {len(results)} file(s).")


def _show_undo_preview(entries: list[LogEntry]) -> None:
    """Display the files that the undo will restore."""
    first = entries[0]
    if first.session_id:
        console.print(f"\n[bold]Undo swift purge {first.session_id[:8]}[/bold]")
    else:
        console.print("\n[bold]Undo banish[/bold]")
    console.print(f"  Date: {entries[-1].timestamp}")
    console.print(f"  Files ({len(entries)}):")
    for entry in entries[:10]:
        size = format_size(entry.file_size) if entry.file_size is not None else "?"
        console.print(f"    - {entry.original_path or entry.file_path} ({size})")
    if len(entries) > 10:
        console.print(f"    ... and {len(entries) - 10} more")
    console.print()
