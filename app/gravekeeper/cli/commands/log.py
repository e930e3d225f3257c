"""Log command for viewing custody history.

This module provides the `gravekeeper log` command for querying the
append-only graveyard log.
"""

import json
from datetime import UTC, datetime, time
from typing import Annotated

import typer

from gravekeeper.cli.shared import open_engine
from gravekeeper.models.log_entry import LogAction, LogEntry, LogFilter
from gravekeeper.utils.formatting import console, create_log_table, format_log_row, print_info


def show_log(
    ctx: typer.Context,
    action: Annotated[
        LogAction | None,
        typer.Option(
            "--action",
            "-a",
            help="Only show entries of this action.",
            case_sensitive=False,
        ),
    ] = None,
    since: Annotated[
        str | None,
        typer.Option(
            "--since",
            help="Show entries since date (YYYY-MM-DD or ISO timestamp).",
        ),
    ] = None,
    until: Annotated[
        str | None,
        typer.Option(
            "--until",
            help="Show entries until date (YYYY-MM-DD or ISO timestamp).",
        ),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option(
            "--limit",
            "-n",
            help="Only show the most recent N entries.",
            min=1,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show the graveyard log.

    Examples:
        gravekeeper log
        gravekeeper log --action banish --since 2026-01-01
        gravekeeper log --json
    """
    log_filter = LogFilter(
        action=action,
        start_date=_parse_date(since, end_of_day=False) if since else None,
        end_date=_parse_date(until, end_of_day=True) if until else None,
    )

    with open_engine(ctx) as engine:
        entries = engine.log.query(log_filter)

    if limit is not None:
        entries = entries[-limit:]

    if json_output:
        _print_json(entries)
        return

    if not entries:
        print_info("No log entries found.")
        return

    table = create_log_table()
    for entry in entries:
        table.add_row(*format_log_row(entry))
    console.print(table)


def _parse_date(value: str, *, end_of_day: bool) -> datetime:
    """Parse a CLI date bound; a bare date covers the whole day.

    Raises:
        typer.Exit: If the value is not a valid date.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        typer.echo(f"Invalid date format: {value}. Use YYYY-MM-DD.", err=True)
        raise typer.Exit(code=1) from None

    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _print_json(entries: list[LogEntry]) -> None:
    """Print log entries as JSON for scripting."""
    console.print_json(json.dumps([entry.to_dict() for entry in entries]))
