"""Reconciliation of the graveyard directory against the log."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from gravekeeper.models.log_entry import LogEntry
from gravekeeper.storage.graveyard_log import GraveyardLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    """Disagreements between the graveyard listing and the log.

    Attributes:
        unlogged_files: Files under the graveyard with no unmatched Banish entry.
        missing_files: Unmatched Banish entries whose file no longer exists.
    """

    unlogged_files: tuple[str, ...] = ()
    missing_files: tuple[LogEntry, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.unlogged_files and not self.missing_files

    @property
    def orphan_count(self) -> int:
        return len(self.unlogged_files) + len(self.missing_files)


def list_graveyard_files(graveyard_root: Path) -> list[str]:
    """List every file under the graveyard root, sorted."""
    if not graveyard_root.is_dir():
        return []

    found: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(graveyard_root):
        found.extend(os.path.join(dirpath, name) for name in filenames)
    return sorted(found)


def reconcile(graveyard_root: Path, log: GraveyardLog) -> ReconcileReport:
    """Compare the graveyard directory with the log's current contents.

    Nothing is moved or deleted; orphans are only reported.

    Args:
        graveyard_root: Quarantine root directory.
        log: Graveyard log to compare against.

    Returns:
        ReconcileReport listing both kinds of orphan.
    """
    root = Path(os.path.abspath(graveyard_root))
    on_disk = list_graveyard_files(root)
    live = log.current_graveyard()

    logged_paths = {os.path.abspath(entry.graveyard_path or "") for entry in live}
    unlogged = tuple(path for path in on_disk if path not in logged_paths)

    disk_paths = set(on_disk)
    missing = tuple(
        entry for entry in live if os.path.abspath(entry.graveyard_path or "") not in disk_paths
    )

    report = ReconcileReport(unlogged_files=unlogged, missing_files=missing)
    if not report.is_clean:
        logger.warning(
            "Graveyard out of sync with log: %d unlogged file(s), %d missing file(s)",
            len(unlogged),
            len(missing),
        )
    return report
