"""Physical moves into and out of the graveyard.

Every move completes (or definitively fails) before its log entry is
appended, and no move ever replaces an existing file. If the append fails
after a successful move, the file is left quarantined but unlogged;
reconciliation reports it as an orphan.
"""

import errno
import logging
import os
import shutil
import stat
from collections.abc import Iterable
from pathlib import Path

from gravekeeper.core.errors import ErrorKind, error_kind_for
from gravekeeper.custody.duplicates import DEFAULT_CHUNK_SIZE, file_digest
from gravekeeper.custody.guard import PathGuard
from gravekeeper.models.log_entry import LogAction, LogEntry, create_log_entry
from gravekeeper.models.record import Tag
from gravekeeper.models.results import BanishResult, RestoreResult
from gravekeeper.storage.graveyard_log import GraveyardLog

logger = logging.getLogger(__name__)

# Name prefix of in-flight copies made by the cross-volume fallback
PARTIAL_PREFIX = ".gk-partial-"

# link() errors meaning the filesystem cannot hard-link this file
_NO_HARD_LINKS = frozenset({errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.EMLINK})


class QuarantineStore:
    """Moves files into the graveyard and back, logging every move.

    Args:
        graveyard_root: Quarantine root directory.
        log: Graveyard log receiving Banish and Restore entries.
        guard: Safety policy re-checked right before every move.
        chunk_size: Read size used to verify cross-volume copies.
    """

    def __init__(
        self,
        graveyard_root: Path,
        log: GraveyardLog,
        guard: PathGuard,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._root = Path(os.path.abspath(graveyard_root))
        self._log = log
        self._guard = guard
        self._chunk_size = chunk_size

    @property
    def graveyard_root(self) -> Path:
        return self._root

    def banish(
        self,
        path: str,
        tags: Iterable[Tag] | None = None,
        size: int | None = None,
        *,
        root: str | None = None,
        session_id: str | None = None,
    ) -> BanishResult:
        """Move a file into the graveyard and log a Banish entry.

        Args:
            path: File to quarantine.
            tags: Classification tags to record.
            size: File size to record (stat'ed when omitted).
            root: Scan root the file was found under; the graveyard mirrors
                the file's path relative to it.
            session_id: Swift-purge session to record on the entry.

        Returns:
            BanishResult with the graveyard path, or a typed failure.
        """
        source = os.path.abspath(path)
        containing = os.path.abspath(root) if root else os.path.dirname(source)

        if self._guard.is_forbidden(containing) or self._guard.is_forbidden(source):
            return _banish_failure(source, ErrorKind.FORBIDDEN_PATH, f"Forbidden path: {source}")
        if self._in_graveyard(source):
            return _banish_failure(
                source, ErrorKind.FORBIDDEN_PATH, f"File is already in the graveyard: {source}"
            )

        try:
            st = os.lstat(source)
        except OSError as e:
            return _banish_failure(source, error_kind_for(e), f"Cannot access {source}: {e}")
        if not stat.S_ISREG(st.st_mode):
            return _banish_failure(source, ErrorKind.IO_ERROR, f"Not a regular file: {source}")

        wanted = self.graveyard_path_for(source, root)
        try:
            wanted.parent.mkdir(parents=True, exist_ok=True)
            while True:
                destination = self._free_destination(wanted)
                try:
                    self._move(Path(source), destination)
                    break
                except FileExistsError:
                    logger.debug("%s was taken during the move, trying the next name", destination)
        except OSError as e:
            logger.warning("Failed to banish %s: %s", source, e)
            return _banish_failure(source, error_kind_for(e), str(e))

        entry = create_log_entry(
            LogAction.BANISH,
            source,
            original_path=source,
            graveyard_path=str(destination),
            classifications=list(tags) if tags is not None else None,
            file_size=size if size is not None else st.st_size,
            session_id=session_id,
        )
        logged = self._append(entry)

        logger.info("Banished %s -> %s", source, destination)
        return BanishResult(
            path=source,
            success=True,
            graveyard_path=str(destination),
            logged=logged,
            error=None if logged else "Moved but not logged; reconcile the graveyard",
            error_kind=None if logged else ErrorKind.ORPHAN,
        )

    def restore(self, graveyard_path: str, original_path: str) -> RestoreResult:
        """Move a file out of the graveyard and log a Restore entry.

        Never overwrites: an occupied ``original_path`` yields CONFLICT and
        leaves both files untouched.

        Args:
            graveyard_path: File inside the graveyard.
            original_path: Where to put it back.

        Returns:
            RestoreResult with the restored path, or a typed failure.
        """
        source = os.path.abspath(graveyard_path)
        target = os.path.abspath(original_path)

        if not self._in_graveyard(source):
            return _restore_failure(
                source, ErrorKind.FORBIDDEN_PATH, f"Not inside the graveyard: {source}"
            )
        if self._guard.is_forbidden(os.path.dirname(target)) or self._guard.is_forbidden(target):
            return _restore_failure(source, ErrorKind.FORBIDDEN_PATH, f"Forbidden path: {target}")
        if not os.path.lexists(source):
            return _restore_failure(
                source, ErrorKind.NOT_FOUND, f"File does not exist in graveyard: {source}"
            )
        if os.path.lexists(target):
            return _restore_failure(
                source,
                ErrorKind.CONFLICT,
                f"Conflict: file already exists at original location: {target}",
            )

        try:
            size = os.lstat(source).st_size
            Path(target).parent.mkdir(parents=True, exist_ok=True)
            self._move(Path(source), Path(target))
        except FileExistsError:
            return _restore_failure(
                source,
                ErrorKind.CONFLICT,
                f"Conflict: file already exists at original location: {target}",
            )
        except OSError as e:
            logger.warning("Failed to restore %s: %s", source, e)
            return _restore_failure(source, error_kind_for(e), str(e))

        entry = create_log_entry(
            LogAction.RESTORE,
            target,
            original_path=target,
            graveyard_path=source,
            file_size=size,
        )
        logged = self._append(entry)
        self._prune_empty_dirs(Path(source).parent)

        logger.info("Restored %s -> %s", source, target)
        return RestoreResult(
            graveyard_path=source,
            success=True,
            restored_path=target,
            logged=logged,
            error=None if logged else "Restored but not logged; reconcile the graveyard",
            error_kind=None if logged else ErrorKind.ORPHAN,
        )

    def graveyard_path_for(self, original_path: str, root: str | None = None) -> Path:
        """Mirror a file's location under the graveyard.

        The path is taken relative to ``root`` when the file lies under it,
        otherwise relative to the filesystem anchor (``/`` or a drive).
        """
        source = Path(os.path.abspath(original_path))
        if root:
            base = Path(os.path.abspath(root))
            if source != base and base in source.parents:
                return self._root / source.relative_to(base)

        parts = list(source.parts[1:])
        if source.drive:
            parts.insert(0, source.drive.rstrip(":\\/").replace(":", "") or "drive")
        return self._root.joinpath(*parts)

    def _in_graveyard(self, path: str) -> bool:
        candidate = Path(path)
        return candidate != self._root and self._root in candidate.parents

    @staticmethod
    def _free_destination(destination: Path) -> Path:
        """Append `` (n)`` before the extension until the name is unused."""
        if not os.path.lexists(destination):
            return destination

        stem, suffix = destination.stem, destination.suffix
        n = 1
        while True:
            candidate = destination.with_name(f"{stem} ({n}){suffix}")
            if not os.path.lexists(candidate):
                return candidate
            n += 1

    def _move(self, source: Path, destination: Path) -> None:
        """Move without replacing, falling back to copy-verify-delete across volumes.

        Raises:
            FileExistsError: If ``destination`` is occupied at the moment of the move.
        """
        try:
            _place(source, destination)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            logger.debug("Cross-device move of %s, copying instead", source)
            self._copy_then_delete(source, destination)

    def _copy_then_delete(self, source: Path, destination: Path) -> None:
        partial = destination.with_name(f"{PARTIAL_PREFIX}{destination.name}")
        shutil.copy2(source, partial)

        try:
            verified = partial.stat().st_size == source.stat().st_size and file_digest(
                partial, self._chunk_size
            ) == file_digest(source, self._chunk_size)
            if not verified:
                raise OSError(errno.EIO, f"Copy verification failed for {source}")
            _place(partial, destination)
        except OSError:
            partial.unlink(missing_ok=True)
            raise

        # The source is only removed once the copy is known to be complete
        try:
            source.unlink()
        except OSError:
            destination.unlink(missing_ok=True)
            raise

    def _append(self, entry: LogEntry) -> bool:
        try:
            self._log.append(entry)
        except OSError as e:
            logger.error(
                "Orphan: %s moved for %s but log append failed: %s",
                entry.action.value,
                entry.file_path,
                e,
            )
            return False
        return True

    def _prune_empty_dirs(self, directory: Path) -> None:
        while directory != self._root and self._root in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                # Not empty (or already gone); stop climbing
                return
            directory = directory.parent


def _place(source: Path, destination: Path) -> None:
    """Give ``source`` the name ``destination`` on the same volume, never replacing.

    A hard link fails atomically with EEXIST when the name is taken. Where the
    filesystem has no hard links, a checked rename is the best available.
    """
    try:
        os.link(source, destination)
    except OSError as e:
        if e.errno not in _NO_HARD_LINKS:
            raise
        if os.path.lexists(destination):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(destination)) from e
        os.rename(source, destination)
        return

    try:
        os.unlink(source)
    except OSError:
        os.unlink(destination)
        raise


def _banish_failure(path: str, kind: ErrorKind, message: str) -> BanishResult:
    return BanishResult(path=path, success=False, error=message, error_kind=kind)


def _restore_failure(graveyard_path: str, kind: ErrorKind, message: str) -> RestoreResult:
    return RestoreResult(
        graveyard_path=graveyard_path, success=False, error=message, error_kind=kind
    )
