"""Aggregate statistics over the graveyard log."""

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

from gravekeeper.models.log_entry import LogAction, LogEntry
from gravekeeper.models.record import Tag
from gravekeeper.storage.graveyard_log import GraveyardLog


@dataclass(frozen=True, slots=True)
class GraveyardStats:
    """Counts and byte totals drawn from the log.

    Tag counts and sizes cover every Banish entry ever written; a file
    carrying several tags counts once under each. ``graveyard_*`` covers
    only what is quarantined right now.

    Attributes:
        total_entries: Log entries of any action.
        total_bytes: Sum of recorded sizes over all entries.
        banished: Banish entries.
        restored: Restore entries.
        resurrected: Resurrect (whitelist) entries.
        graveyard_files: Files currently in the graveyard.
        graveyard_bytes: Recorded size of the files currently in the graveyard.
    """

    total_entries: int = 0
    total_bytes: int = 0
    banished: int = 0
    restored: int = 0
    resurrected: int = 0
    ghosts: int = 0
    zombies: int = 0
    demons: int = 0
    ghost_bytes: int = 0
    zombie_bytes: int = 0
    demon_bytes: int = 0
    graveyard_files: int = 0
    graveyard_bytes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def calculate_stats(entries: Iterable[LogEntry], live: Iterable[LogEntry]) -> GraveyardStats:
    """Fold log entries into a GraveyardStats.

    Args:
        entries: Every log entry, in append order.
        live: Unmatched Banish entries (see ``GraveyardLog.current_graveyard``).

    Returns:
        The aggregated statistics.
    """
    actions = dict.fromkeys(LogAction, 0)
    tag_counts = dict.fromkeys(Tag, 0)
    tag_bytes = dict.fromkeys(Tag, 0)
    total_entries = 0
    total_bytes = 0

    for entry in entries:
        size = entry.file_size or 0
        total_entries += 1
        total_bytes += size
        actions[entry.action] += 1
        if entry.action != LogAction.BANISH:
            continue
        for tag in set(entry.classifications or ()):
            tag_counts[tag] += 1
            tag_bytes[tag] += size

    current = list(live)
    return GraveyardStats(
        total_entries=total_entries,
        total_bytes=total_bytes,
        banished=actions[LogAction.BANISH],
        restored=actions[LogAction.RESTORE],
        resurrected=actions[LogAction.RESURRECT],
        ghosts=tag_counts[Tag.GHOST],
        zombies=tag_counts[Tag.ZOMBIE],
        demons=tag_counts[Tag.DEMON],
        ghost_bytes=tag_bytes[Tag.GHOST],
        zombie_bytes=tag_bytes[Tag.ZOMBIE],
        demon_bytes=tag_bytes[Tag.DEMON],
        graveyard_files=len(current),
        graveyard_bytes=sum(entry.file_size or 0 for entry in current),
    )


def graveyard_stats(log: GraveyardLog) -> GraveyardStats:
    """Compute statistics for everything the log has recorded."""
    return calculate_stats(log.query(), log.current_graveyard())
