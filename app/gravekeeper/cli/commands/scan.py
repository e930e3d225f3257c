"""Scan command implementation.

Finds Ghosts, Zombies and Demons under a directory without moving anything.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from gravekeeper.cli.shared import check_root, open_engine, scan_and_classify
from gravekeeper.custody.classifier import summarize
from gravekeeper.utils.formatting import (
    console,
    create_file_table,
    format_file_row,
    format_size,
    print_info,
)


def scan(
    ctx: typer.Context,
    root: Annotated[
        Path,
        typer.Argument(help="Directory to scan.", file_okay=False),
    ],
    cap: Annotated[
        int | None,
        typer.Option(
            "--cap",
            help="Maximum number of files to collect (default from settings).",
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
    show_all: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
            help="Include untagged files in the output.",
        ),
    ] = False,
) -> None:
    """Scan a directory and classify what it finds.

    Examples:
        gravekeeper scan ~/Downloads
        gravekeeper scan ~/Downloads --cap 5000
        gravekeeper scan ~/Downloads --json
    """
    root = root.expanduser()
    with open_engine(ctx) as engine:
        check_root(engine, root)
        result, classified = scan_and_classify(engine, root, cap)

    shown = classified if show_all else [item for item in classified if item.is_tagged]
    summary = summarize(classified)

    if json_output:
        payload = {
            "root": result.root,
            "scanned": len(result.records),
            "limit_reached": result.limit_reached,
            "cancelled": result.cancelled,
            "summary": {
                "ghosts": summary.ghosts,
                "zombies": summary.zombies,
                "demons": summary.demons,
                "tagged_files": summary.tagged_files,
                "tagged_bytes": summary.tagged_bytes,
            },
            "files": [item.to_dict() for item in shown],
        }
        console.print_json(json.dumps(payload))
        return

    if not shown:
        print_info(f"Scanned {len(result.records)} files. Nothing to haunt you here.")
        return

    table = create_file_table(f"Scan of {result.root}")
    for item in shown:
        table.add_row(*format_file_row(item))
    console.print(table)

    console.print(
        f"\n[bold]{summary.tagged_files}[/bold] of {len(result.records)} files tagged "
        f"([ghost]{summary.ghosts} Ghosts[/], [zombie]{summary.zombies} Zombies[/], "
        f"[demon]{summary.demons} Demons[/]), "
        f"[info]{format_size(summary.tagged_bytes)}[/] reclaimable."
    )
