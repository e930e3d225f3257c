"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from gravekeeper.core.theme import get_theme
from gravekeeper.models.record import TAG_PRECEDENCE, Tag

if TYPE_CHECKING:
    from gravekeeper.custody.stats import GraveyardStats
    from gravekeeper.models.log_entry import LogEntry
    from gravekeeper.models.record import ClassifiedFile


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, let Rich decide otherwise."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def format_size(size_bytes: int | None) -> str:
    """Format byte count as human-readable string."""
    if size_bytes is None or size_bytes == 0:
        return "0 B"
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def format_age(last_modified: datetime, now: datetime | None = None) -> str:
    """Format the time since ``last_modified`` in days, months or years."""
    now = now or datetime.now(UTC)
    days = max((now - last_modified).days, 0)
    if days < 60:
        return f"{days}d"
    if days < 730:
        return f"{days // 30}mo"
    return f"{days // 365}y"


def format_tags(tags: frozenset[Tag] | set[Tag]) -> str:
    """Render tags in display precedence with their theme styles."""
    if not tags:
        return "[muted]-[/]"
    return " ".join(
        f"[{tag.value}]{tag.value.title()}[/]" for tag in TAG_PRECEDENCE if tag in tags
    )


def create_file_table(title: str) -> Table:
    """Create a pre-configured table for classified files.

    Args:
        title: Table title.

    Returns:
        Rich Table with tag, path, size, age and note columns.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Tags", no_wrap=True)
    table.add_column("Path", style="file.path", overflow="fold")
    table.add_column("Size", style="file.size", justify="right")
    table.add_column("Age", style="file.age", justify="right")
    table.add_column("Note", style="muted", overflow="ellipsis")
    return table


def format_file_row(
    item: ClassifiedFile, now: datetime | None = None
) -> tuple[str, str, str, str, str]:
    """Format a classified file as a table row with Rich markup."""
    note = f"copy of {item.duplicate_of}" if item.duplicate_of else ""
    return (
        format_tags(item.tags),
        item.path,
        format_size(item.size),
        format_age(item.record.last_modified, now),
        note,
    )


def create_log_table(title: str = "Graveyard Log") -> Table:
    """Create a pre-configured table for log entries."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Time", style="muted", no_wrap=True)
    table.add_column("Action", no_wrap=True)
    table.add_column("Path", style="file.path", overflow="fold")
    table.add_column("Graveyard", style="muted", overflow="fold")
    table.add_column("Size", style="file.size", justify="right")
    return table


def format_log_row(entry: LogEntry) -> tuple[str, str, str, str, str]:
    """Format a log entry as a table row with Rich markup."""
    action = entry.action.value
    return (
        entry.timestamp_dt.strftime("%Y-%m-%d %H:%M:%S"),
        f"[{action}]{action}[/]",
        entry.original_path or entry.file_path,
        entry.graveyard_path or "-",
        format_size(entry.file_size) if entry.file_size is not None else "-",
    )


def create_stats_table(stats: GraveyardStats) -> Table:
    """Create a table of banished files per tag with their recorded sizes."""
    table = Table(
        title="Banished by Tag",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Tag", no_wrap=True)
    table.add_column("Files", justify="right")
    table.add_column("Size", style="file.size", justify="right")
    rows = {
        Tag.DEMON: (stats.demons, stats.demon_bytes),
        Tag.GHOST: (stats.ghosts, stats.ghost_bytes),
        Tag.ZOMBIE: (stats.zombies, stats.zombie_bytes),
    }
    for tag in TAG_PRECEDENCE:
        count, size = rows[tag]
        table.add_row(format_tags({tag}), str(count), format_size(size))
    return table


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
