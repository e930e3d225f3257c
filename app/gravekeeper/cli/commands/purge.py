"""Swift purge command implementation.

Scans a directory and banishes every tagged file in one session.
"""

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
    print_error,
    print_info,
    print_success,
    print_warning,
)


def purge(
    ctx: typer.Context,
    root: Annotated[
        Path,
        typer.Argument(help="Directory to scan and purge.", file_okay=False),
    ],
    cap: Annotated[
        int | None,
        typer.Option(
            "--cap",
            help="Maximum number of files to collect (default from settings).",
            min=1,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be banished without moving anything.",
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
    """Banish every Ghost, Zombie and Demon under a directory.

    Files are moved one at a time; a file that cannot be moved is reported
    and the rest carry on. `gravekeeper undo` brings the whole batch back.

    Examples:
        gravekeeper purge ~/Downloads --dry-run
        gravekeeper purge ~/Downloads -y
    """
    root = root.expanduser()
    with open_engine(ctx) as engine:
        check_root(engine, root)
        result, classified = scan_and_classify(engine, root, cap)

        tagged = [item for item in classified if item.is_tagged]
        if not tagged:
            print_info(f"Scanned {len(result.records)} files. Nothing to purge.")
            return

        table = create_file_table(f"Swift purge of {result.root}")
        for item in tagged:
            table.add_row(*format_file_row(item))
        console.print(table)

        summary = summarize(tagged)
        console.print(
            f"\n[bold]{summary.tagged_files}[/bold] file(s), "
            f"[info]{format_size(summary.tagged_bytes)}[/] to banish."
        )

        if dry_run:
            print_info("[dry-run] No changes made.")
            return

        if not yes and not typer.confirm("Banish all of these files?"):
            print_info("Cancelled.")
            return

        with console.status("Banishing...") as status:
            outcome = engine.purge(
                tagged,
                root=result.root,
                on_progress=lambda p: status.update(f"Banishing... {p.count}/{len(tagged)}"),
            )

    for error in outcome.errors:
        print_error(f"{error.path}: {error.message} ({error.error_kind.value})")

    message = (
        f"Banished {outcome.purged_count} file(s), "
        f"{format_size(outcome.bytes_freed)} freed (session {outcome.session_id[:8]})."
    )
    if outcome.success:
        print_success(message)
    else:
        print_warning(f"{message} {len(outcome.errors)} file(s) failed.")
    print_info("Run 'gravekeeper undo' to bring the whole batch back.")

    if not outcome.success:
        raise typer.Exit(code=1)
