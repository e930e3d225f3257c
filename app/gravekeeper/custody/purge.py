"""Swift purge: bulk banish of classified files under one undo session."""

import logging
import uuid
from collections.abc import Callable, Sequence

from gravekeeper.core.errors import ErrorKind
from gravekeeper.custody.quarantine import QuarantineStore
from gravekeeper.custody.undo import UndoCoordinator
from gravekeeper.models.record import ClassifiedFile
from gravekeeper.models.results import ItemError, PurgeResult, ScanProgress

logger = logging.getLogger(__name__)

PHASE_PURGING = "purging"


class SwiftPurgeExecutor:
    """Banishes a batch of files one at a time.

    Files are processed sequentially so that the log prefix always reflects
    a committed state; a failing file is recorded and the batch moves on.
    """

    def __init__(self, store: QuarantineStore, coordinator: UndoCoordinator) -> None:
        self._store = store
        self._coordinator = coordinator

    def purge(
        self,
        files: Sequence[ClassifiedFile],
        *,
        root: str | None = None,
        on_progress: Callable[[ScanProgress], None] | None = None,
    ) -> PurgeResult:
        """Banish every file and open an undo session over the moved ones.

        Args:
            files: Classified files to banish, in the order given.
            root: Scan root, used to mirror relative paths in the graveyard.
            on_progress: Called after each file with the running count.

        Returns:
            PurgeResult with the session id, totals and per-file errors.
        """
        session_id = uuid.uuid4().hex
        moved: list[tuple[str, str]] = []
        errors: list[ItemError] = []
        bytes_freed = 0

        for index, item in enumerate(files, start=1):
            result = self._store.banish(
                item.path,
                tags=item.sorted_tags(),
                size=item.size,
                root=root,
                session_id=session_id,
            )
            if result.success and result.graveyard_path:
                moved.append((result.path, result.graveyard_path))
                bytes_freed += item.size
                if not result.logged:
                    errors.append(
                        ItemError(
                            path=result.path,
                            error_kind=ErrorKind.ORPHAN,
                            message=result.error or "Moved but not logged",
                        )
                    )
            else:
                errors.append(
                    ItemError(
                        path=result.path,
                        error_kind=result.error_kind or ErrorKind.IO_ERROR,
                        message=result.error or "Banish failed",
                    )
                )

            if on_progress is not None:
                on_progress(ScanProgress(count=index, phase=PHASE_PURGING, current_path=item.path))

        expires_at = None
        if moved:
            session = self._coordinator.open_session(moved, session_id=session_id)
            expires_at = session.expires_at

        logger.info(
            "Swift purge %s: %d moved, %d failed, %d bytes freed",
            session_id,
            len(moved),
            len(errors),
            bytes_freed,
        )
        return PurgeResult(
            session_id=session_id,
            purged_count=len(moved),
            bytes_freed=bytes_freed,
            errors=tuple(errors),
            expires_at=expires_at,
            moved=tuple(moved),
        )
