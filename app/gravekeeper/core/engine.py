"""Custody engine facade.

Wires the scanner, classifier, quarantine store, undo coordinator and the
two persisted stores together from Settings, and runs scans on a thread
pool so that callers can poll progress and cancel.
"""

import dataclasses
import logging
import os
import queue
import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path

from gravekeeper.core.config import Settings
from gravekeeper.core.errors import ErrorKind, ScanInProgressError
from gravekeeper.core.paths import ensure_dir
from gravekeeper.custody.classifier import Classifier
from gravekeeper.custody.duplicates import DuplicateDetector, DuplicateGroup
from gravekeeper.custody.guard import PathGuard
from gravekeeper.custody.purge import SwiftPurgeExecutor
from gravekeeper.custody.quarantine import QuarantineStore
from gravekeeper.custody.reconcile import ReconcileReport, reconcile
from gravekeeper.custody.scanner import Scanner
from gravekeeper.custody.stats import GraveyardStats, graveyard_stats
from gravekeeper.custody.undo import UndoCoordinator, UndoSession
from gravekeeper.models.log_entry import LogAction, LogEntry, create_log_entry
from gravekeeper.models.record import ClassifiedFile, FileRecord, Tag
from gravekeeper.models.results import (
    BanishResult,
    PurgeResult,
    RestoreResult,
    ScanProgress,
    ScanResult,
    SessionUndoResult,
    UndoResult,
)
from gravekeeper.storage.graveyard_log import GraveyardLog
from gravekeeper.storage.whitelist import WhitelistStore

logger = logging.getLogger(__name__)

# Marks the end of a scan's progress stream
_DONE = object()


class ScanHandle:
    """Handle on a scan running in the background.

    Attributes:
        root: Absolute path of the directory being scanned.
    """

    def __init__(
        self,
        root: str,
        future: "Future[ScanResult]",
        cancel_event: threading.Event,
        progress_queue: "queue.Queue[object]",
    ) -> None:
        self.root = root
        self._future = future
        self._cancel = cancel_event
        self._progress = progress_queue

    @property
    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> None:
        """Ask the scan to stop at the next directory boundary."""
        self._cancel.set()

    def result(self, timeout: float | None = None) -> ScanResult:
        """Wait for the scan and return its (possibly partial) result."""
        return self._future.result(timeout=timeout)

    def progress(self) -> Iterator[ScanProgress]:
        """Yield progress events until the scan finishes.

        Only one consumer should iterate the stream.
        """
        while True:
            item = self._progress.get()
            if item is _DONE:
                return
            yield item  # type: ignore[misc]


class Gravekeeper:
    """The file-custody engine.

    Args:
        settings: Runtime settings (defaults when omitted).
        now: Clock override for classification and undo expiry.
        reconcile_on_start: Compare the graveyard with the log on startup
            and log any orphans as warnings.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        now: Callable[[], datetime] | None = None,
        reconcile_on_start: bool = True,
    ) -> None:
        self._settings = settings or Settings()
        self._now = now or (lambda: datetime.now(UTC))

        graveyard_dir = ensure_dir(self._settings.effective_graveyard_dir, "graveyard")
        state_dir = ensure_dir(self._settings.effective_state_dir, "state")
        self._graveyard_dir = Path(os.path.abspath(graveyard_dir))

        self._guard = PathGuard(
            extra_forbidden=[
                self._graveyard_dir,
                os.path.abspath(state_dir),
                *self._settings.extra_forbidden_paths,
            ]
        )

        self._log = GraveyardLog(self._settings.log_path)
        if self._log.ensure():
            logger.warning("Graveyard log was corrupt and has been reset")
        self._whitelist = WhitelistStore(self._settings.whitelist_path)
        if self._whitelist.load():
            logger.debug("Whitelist initialized at %s", self._whitelist.path)

        self._store = QuarantineStore(
            self._graveyard_dir,
            self._log,
            self._guard,
            chunk_size=self._settings.hash_chunk_size,
        )
        self._undo = UndoCoordinator(
            self._store,
            token_ttl=self._settings.undo_token_ttl,
            session_ttl=self._settings.session_ttl,
            now=self._now,
        )
        self._purger = SwiftPurgeExecutor(self._store, self._undo)
        self._scanner = Scanner(
            self._guard,
            follow_symlinks=self._settings.follow_symlinks,
            progress_interval=self._settings.progress_interval,
        )
        self._detector = DuplicateDetector(self._settings.hash_chunk_size)
        self._classifier = Classifier(self._settings.classifier_policy(), now=self._now)

        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="gravekeeper-scan")
        self._scans_lock = threading.Lock()
        self._active_scans: dict[str, threading.Event] = {}

        if reconcile_on_start:
            self.reconcile()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def guard(self) -> PathGuard:
        return self._guard

    @property
    def whitelist(self) -> WhitelistStore:
        return self._whitelist

    @property
    def log(self) -> GraveyardLog:
        return self._log

    @property
    def graveyard_dir(self) -> Path:
        return self._graveyard_dir

    def close(self) -> None:
        """Cancel running scans and shut the worker pool down."""
        with self._scans_lock:
            for event in self._active_scans.values():
                event.set()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "Gravekeeper":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Scanning

    def start_scan(
        self,
        root: str | Path,
        cap: int | None = None,
        on_progress: Callable[[ScanProgress], None] | None = None,
    ) -> ScanHandle:
        """Start a background scan of ``root``.

        Args:
            root: Directory to scan.
            cap: File cap (defaults to the configured scan cap).
            on_progress: Extra callback invoked from the worker thread.

        Returns:
            ScanHandle for progress, cancellation and the result.

        Raises:
            ScanInProgressError: If ``root`` is already being scanned.
        """
        root_str = os.path.abspath(os.path.expanduser(str(root)))
        limit = self._settings.scan_cap if cap is None else cap

        cancel_event = threading.Event()
        with self._scans_lock:
            if root_str in self._active_scans:
                raise ScanInProgressError(root_str)
            self._active_scans[root_str] = cancel_event

        progress_queue: queue.Queue[object] = queue.Queue()

        def report(progress: ScanProgress) -> None:
            progress_queue.put(progress)
            if on_progress is not None:
                on_progress(progress)

        def run() -> ScanResult:
            try:
                return self._scanner.scan(root_str, limit, report, cancel_event)
            finally:
                with self._scans_lock:
                    self._active_scans.pop(root_str, None)
                progress_queue.put(_DONE)

        try:
            future = self._executor.submit(run)
        except RuntimeError:
            with self._scans_lock:
                self._active_scans.pop(root_str, None)
            raise

        logger.debug("Started scan of %s (cap %s)", root_str, limit)
        return ScanHandle(root_str, future, cancel_event, progress_queue)

    def scan(
        self,
        root: str | Path,
        cap: int | None = None,
        on_progress: Callable[[ScanProgress], None] | None = None,
    ) -> ScanResult:
        """Scan ``root`` and wait for the result."""
        return self.start_scan(root, cap, on_progress).result()

    def is_scanning(self, root: str | Path) -> bool:
        root_str = os.path.abspath(os.path.expanduser(str(root)))
        with self._scans_lock:
            return root_str in self._active_scans

    # Classification

    def find_duplicates(
        self,
        records: Iterable[FileRecord],
        cancel: threading.Event | None = None,
        on_progress: Callable[[ScanProgress], None] | None = None,
    ) -> list[DuplicateGroup]:
        return self._detector.detect(records, cancel=cancel, on_progress=on_progress)

    def classify(
        self,
        records: Iterable[FileRecord],
        cancel: threading.Event | None = None,
        on_progress: Callable[[ScanProgress], None] | None = None,
    ) -> list[ClassifiedFile]:
        """Tag records against the live whitelist.

        Args:
            records: Scanned records.
            cancel: Stops duplicate hashing between size buckets.
            on_progress: Receives hashing progress.

        Returns:
            One ClassifiedFile per record, in input order.
        """
        records = list(records)
        groups = self.find_duplicates(records, cancel=cancel, on_progress=on_progress)
        return self._classifier.classify(records, self._whitelist.snapshot(), groups)

    # Custody

    def banish(
        self,
        path: str | Path,
        tags: Iterable[Tag] | None = None,
        size: int | None = None,
        *,
        root: str | Path | None = None,
    ) -> BanishResult:
        """Quarantine one file and issue an undo token for it."""
        result = self._store.banish(
            str(path), tags=tags, size=size, root=str(root) if root is not None else None
        )
        if not result.success or result.graveyard_path is None:
            return result

        undo_id = self._undo.register(result.path, result.graveyard_path)
        return dataclasses.replace(result, undo_id=undo_id)

    def restore(
        self, graveyard_path: str | Path, original_path: str | Path | None = None
    ) -> RestoreResult:
        """Move a quarantined file back.

        When ``original_path`` is omitted it is looked up in the log.
        """
        gp = os.path.abspath(str(graveyard_path))
        if original_path is None:
            entry = self._find_live_entry(gp)
            if entry is None:
                return RestoreResult(
                    graveyard_path=gp,
                    success=False,
                    error=f"No graveyard log entry for {gp}",
                    error_kind=ErrorKind.NOT_FOUND,
                )
            original_path = entry.original_path or entry.file_path

        return self._store.restore(gp, str(original_path))

    def undo(self, undo_id: str) -> UndoResult:
        return self._undo.undo(undo_id)

    def purge(
        self,
        files: Iterable[ClassifiedFile],
        *,
        root: str | Path | None = None,
        on_progress: Callable[[ScanProgress], None] | None = None,
    ) -> PurgeResult:
        """Swift purge: banish all files under one undo session."""
        return self._purger.purge(
            list(files),
            root=str(root) if root is not None else None,
            on_progress=on_progress,
        )

    def undo_session(self, session_id: str) -> SessionUndoResult:
        return self._undo.undo_session(session_id)

    def active_sessions(self) -> list[UndoSession]:
        return self._undo.active_sessions()

    def resurrect(self, path: str | Path) -> str:
        """Whitelist a path and record the decision in the log.

        Returns:
            The normalized path that was whitelisted.

        Raises:
            OSError: If the whitelist cannot be persisted.
        """
        normalized = os.path.abspath(os.path.expanduser(str(path)))
        self._whitelist.add(normalized)
        try:
            size: int | None = os.stat(normalized).st_size
        except OSError:
            # Whitelisting a path that is not there yet is allowed
            size = None
        try:
            self._log.append(create_log_entry(LogAction.RESURRECT, normalized, file_size=size))
        except OSError as e:
            logger.error("Whitelisted %s but could not log it: %s", normalized, e)
        return normalized

    def pending_undo(self) -> list[LogEntry]:
        """Banish entries the next :meth:`undo_last` would reverse.

        That is the most recent swift-purge session if the newest live
        Banish entry belongs to one, otherwise that single entry.
        """
        live = self._log.current_graveyard()
        if not live:
            return []

        newest = live[-1]
        if newest.session_id is None:
            return [newest]
        return [entry for entry in live if entry.session_id == newest.session_id]

    def undo_last(self) -> list[RestoreResult]:
        """Restore the most recent custody action using the log alone.

        Works across processes since no undo token is needed; session
        expiry does not apply.
        """
        return [
            self._store.restore(entry.graveyard_path or "", entry.original_path or entry.file_path)
            for entry in self.pending_undo()
        ]

    def current_graveyard(self) -> list[LogEntry]:
        return self._log.current_graveyard()

    def reconcile(self) -> ReconcileReport:
        """Compare the graveyard directory with the log; never deletes."""
        return reconcile(self._graveyard_dir, self._log)

    def stats(self) -> GraveyardStats:
        """Counts and sizes over the whole log and the current graveyard."""
        return graveyard_stats(self._log)

    def _find_live_entry(self, graveyard_path: str) -> LogEntry | None:
        for entry in reversed(self._log.current_graveyard()):
            if entry.graveyard_path and os.path.abspath(entry.graveyard_path) == graveyard_path:
                return entry
        return None
