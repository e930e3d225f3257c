"""Shared helpers for CLI commands.

Settings loading and engine construction live here so that every command
reports configuration problems the same way.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from gravekeeper.core.config import Settings, load_settings
from gravekeeper.core.engine import Gravekeeper
from gravekeeper.core.errors import ConfigError, ScanInProgressError
from gravekeeper.custody.guard import Verdict
from gravekeeper.models.record import ClassifiedFile
from gravekeeper.models.results import ScanProgress, ScanResult
from gravekeeper.utils.formatting import err_console, print_error, print_warning


def get_config_path(ctx: typer.Context) -> Path | None:
    """Settings path given with ``--config``, if any."""
    obj = ctx.obj or {}
    return obj.get("config_path")


def get_settings(ctx: typer.Context) -> Settings:
    """Load settings or exit with an error message.

    Raises:
        typer.Exit: If the settings file is invalid.
    """
    try:
        settings = load_settings(get_config_path(ctx))
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None

    obj = ctx.obj or {}
    if not obj.get("verbose") and not obj.get("quiet"):
        logging.getLogger("gravekeeper").setLevel(settings.log_level)
    return settings


@contextmanager
def open_engine(ctx: typer.Context) -> Iterator[Gravekeeper]:
    """Build the custody engine from settings and close it afterwards.

    Raises:
        typer.Exit: If settings are invalid or state directories cannot be created.
    """
    settings = get_settings(ctx)
    try:
        engine = Gravekeeper(settings)
    except (RuntimeError, OSError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None

    try:
        yield engine
    finally:
        engine.close()


def check_root(engine: Gravekeeper, root: Path) -> None:
    """Refuse forbidden roots and warn about custom ones.

    Raises:
        typer.Exit: If the root is forbidden or not a directory.
    """
    if engine.guard.check(root) == Verdict.FORBIDDEN:
        print_error(engine.guard.describe(root) or f"Forbidden path: {root}")
        raise typer.Exit(code=1)
    if not root.is_dir():
        print_error(f"Not a directory: {root}")
        raise typer.Exit(code=1)

    note = engine.guard.describe(root)
    if note:
        print_warning(note)


def scan_and_classify(
    engine: Gravekeeper, root: Path, cap: int | None = None
) -> tuple[ScanResult, list[ClassifiedFile]]:
    """Scan ``root`` in the background with a live status line, then classify.

    Ctrl+C cancels the scan and classification carries on with the partial
    result.

    Raises:
        typer.Exit: If the root is already being scanned.
    """
    try:
        handle = engine.start_scan(root, cap)
    except ScanInProgressError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None

    with err_console.status(f"Scanning {handle.root}...") as status:
        try:
            for progress in handle.progress():
                status.update(f"Scanning {handle.root}... {progress.count} files")
        except KeyboardInterrupt:
            handle.cancel()
        result = handle.result()

        def on_hash(progress: ScanProgress) -> None:
            status.update(f"Comparing contents... {progress.count} files hashed")

        classified = engine.classify(result.records, on_progress=on_hash)

    if result.cancelled:
        print_warning(f"Scan cancelled; showing {len(result.records)} files found so far.")
    if result.limit_reached:
        print_warning(f"Scan stopped at the limit of {len(result.records)} files.")
    for path, message in result.errors:
        print_warning(f"{path}: {message}")

    return result, classified
