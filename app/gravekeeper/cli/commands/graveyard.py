"""Graveyard commands.

Lists quarantined files, summarizes the log and checks the graveyard
directory against the log.
"""

import json
from typing import Annotated

import typer

from gravekeeper.cli.shared import open_engine
from gravekeeper.utils.formatting import (
    console,
    create_log_table,
    create_stats_table,
    format_log_row,
    format_size,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Inspect the graveyard.",
    no_args_is_help=True,
)


@app.command(name="list")
def list_graveyard(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """List files currently in the graveyard."""
    with open_engine(ctx) as engine:
        entries = engine.current_graveyard()

    if json_output:
        console.print_json(json.dumps([entry.to_dict() for entry in entries]))
        return

    if not entries:
        print_info("The graveyard is empty.")
        return

    table = create_log_table("Graveyard")
    for entry in entries:
        table.add_row(*format_log_row(entry))
    console.print(table)

    total = sum(entry.file_size or 0 for entry in entries)
    console.print(f"\n{len(entries)} file(s), [info]{format_size(total)}[/] in the graveyard.")


@app.command()
def reconcile(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Compare the graveyard directory with the log.

    Reports files with no log entry and log entries with no file.
    Nothing is moved or deleted.
    """
    with open_engine(ctx) as engine:
        report = engine.reconcile()

    if json_output:
        data = {
            "unlogged_files": list(report.unlogged_files),
            "missing_files": [entry.to_dict() for entry in report.missing_files],
        }
        console.print_json(json.dumps(data))
        return

    if report.is_clean:
        print_success("Graveyard and log agree.")
        return

    if report.unlogged_files:
        print_warning(f"{len(report.unlogged_files)} file(s) in the graveyard with no log entry:")
        for path in report.unlogged_files:
            console.print(f"  - {path}")
    if report.missing_files:
        print_warning(f"{len(report.missing_files)} log entry(ies) with no file in the graveyard:")
        for entry in report.missing_files:
            origin = entry.original_path or entry.file_path
            console.print(f"  - {entry.graveyard_path} (from {origin})")
    raise typer.Exit(code=1)


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show totals drawn from the graveyard log.

    Tag counts and sizes cover every banishment on record; the graveyard
    totals cover only what is quarantined now.
    """
    with open_engine(ctx) as engine:
        result = engine.stats()

    if json_output:
        console.print_json(json.dumps(result.to_dict()))
        return

    if result.total_entries == 0:
        print_info("The graveyard log is empty.")
        return

    console.print(create_stats_table(result))
    console.print(
        f"\nBanished [info]{result.banished}[/], restored [info]{result.restored}[/], "
        f"resurrected [info]{result.resurrected}[/]."
    )
    console.print(
        f"{result.graveyard_files} file(s), [info]{format_size(result.graveyard_bytes)}[/] "
        "in the graveyard now."
    )
