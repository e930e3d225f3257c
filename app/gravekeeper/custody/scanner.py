"""Directory scanner producing raw file records.

Walks a directory tree depth-first, collecting regular files up to a cap.
Every directory is checked against the PathGuard before descending, and a
set of visited (device, inode) identities stops symlink cycles.
"""

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from gravekeeper.custody.guard import PathGuard
from gravekeeper.models.record import FileRecord
from gravekeeper.models.results import ScanProgress, ScanResult

logger = logging.getLogger(__name__)

# Default cap used by the bulk (swift purge) scan mode
DEFAULT_SCAN_CAP = 1000

PHASE_SCANNING = "scanning"
PHASE_COMPLETE = "complete"

ProgressCallback = Callable[[ScanProgress], None]


class Scanner:
    """Collects regular files under a root directory.

    Args:
        guard: Safety policy consulted for the root and every subdirectory.
        follow_symlinks: Descend into symlinked directories (cycle-safe).
        progress_interval: Emit a progress event every N collected files.
    """

    def __init__(
        self,
        guard: PathGuard,
        *,
        follow_symlinks: bool = True,
        progress_interval: int = 50,
    ) -> None:
        if progress_interval < 1:
            msg = f"progress_interval must be positive, got {progress_interval}"
            raise ValueError(msg)
        self._guard = guard
        self._follow_symlinks = follow_symlinks
        self._progress_interval = progress_interval

    def scan(
        self,
        root: str | Path,
        cap: int | None = None,
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> ScanResult:
        """Walk ``root`` and return the regular files found.

        Cancellation is polled at each directory boundary. A cancelled or
        capped scan still returns everything collected so far.

        Args:
            root: Directory to scan.
            cap: Maximum number of files to collect (None for unlimited).
            on_progress: Called periodically with a monotonic file count.
            cancel: Event that, once set, stops the walk.

        Returns:
            ScanResult with records, limit/cancel flags, and read errors.
        """
        if cap is not None and cap < 0:
            msg = f"cap must be non-negative, got {cap}"
            raise ValueError(msg)

        root_str = os.path.abspath(os.path.expanduser(str(root)))
        records: list[FileRecord] = []
        errors: list[tuple[str, str]] = []
        visited: set[tuple[int, int]] = set()
        limit_reached = False
        cancelled = False

        if self._guard.is_forbidden(root_str) or self._guard.is_forbidden(
            os.path.realpath(root_str)
        ):
            logger.warning("Refusing to scan forbidden root: %s", root_str)
            errors.append((root_str, "Forbidden path"))
            return ScanResult(root=root_str, records=(), errors=tuple(errors))

        # Depth-first; children are pushed in reverse so they pop in name order.
        stack: list[str] = [root_str]

        while stack:
            if cancel is not None and cancel.is_set():
                cancelled = True
                logger.info("Scan of %s cancelled after %d files", root_str, len(records))
                break

            directory = stack.pop()
            subdirs, limit_reached = self._scan_directory(
                directory, records, errors, visited, cap, on_progress
            )
            if limit_reached:
                logger.info("Scan of %s stopped at cap of %d files", root_str, cap)
                break
            stack.extend(reversed(subdirs))

        if on_progress is not None:
            on_progress(
                ScanProgress(count=len(records), phase=PHASE_COMPLETE, current_path=root_str)
            )

        return ScanResult(
            root=root_str,
            records=tuple(records),
            limit_reached=limit_reached,
            cancelled=cancelled,
            errors=tuple(errors),
        )

    def _scan_directory(
        self,
        directory: str,
        records: list[FileRecord],
        errors: list[tuple[str, str]],
        visited: set[tuple[int, int]],
        cap: int | None,
        on_progress: ProgressCallback | None,
    ) -> tuple[list[str], bool]:
        """Collect files from one directory.

        Returns:
            Subdirectories to descend into, and whether the cap was hit.
        """
        try:
            st = os.stat(directory)
        except OSError as e:
            logger.warning("Cannot stat directory %s: %s", directory, e)
            errors.append((directory, str(e)))
            return [], False

        identity = (st.st_dev, st.st_ino)
        if identity in visited:
            logger.debug("Skipping already visited directory: %s", directory)
            return [], False
        visited.add(identity)

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning("Cannot read directory %s: %s", directory, e)
            errors.append((directory, str(e)))
            return [], False

        subdirs: list[str] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if self._may_descend(entry.path):
                        subdirs.append(entry.path)
                    continue

                if entry.is_symlink():
                    if (
                        self._follow_symlinks
                        and entry.is_dir(follow_symlinks=True)
                        and self._may_descend(entry.path)
                    ):
                        subdirs.append(entry.path)
                    continue

                if not entry.is_file(follow_symlinks=False):
                    continue

                if cap is not None and len(records) >= cap:
                    return subdirs, True

                stat = entry.stat(follow_symlinks=False)
                records.append(FileRecord.from_stat(entry.path, stat.st_size, stat.st_mtime))
            except OSError as e:
                logger.warning("Cannot access %s: %s", entry.path, e)
                errors.append((entry.path, str(e)))
                continue

            if on_progress is not None and len(records) % self._progress_interval == 0:
                on_progress(
                    ScanProgress(count=len(records), phase=PHASE_SCANNING, current_path=entry.path)
                )

        return subdirs, False

    def _may_descend(self, path: str) -> bool:
        # The resolved target is checked too so a link cannot lead into a
        # forbidden tree.
        if self._guard.is_forbidden(path) or self._guard.is_forbidden(os.path.realpath(path)):
            logger.debug("Not descending into forbidden directory: %s", path)
            return False
        return True
