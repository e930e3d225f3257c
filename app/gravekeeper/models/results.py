"""Result objects returned by custody operations.

Filesystem and storage failures are reported through these frozen
dataclasses (``success`` plus ``error``/``error_kind``) rather than raised,
so that batch callers can isolate per-item failures.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from gravekeeper.core.errors import ErrorKind
from gravekeeper.models.record import FileRecord


@dataclass(frozen=True, slots=True)
class ScanProgress:
    """Progress notification emitted while scanning or hashing.

    Attributes:
        count: Items processed so far in this phase (monotonic).
        phase: Human-readable phase name ("scanning", "hashing", ...).
        current_path: Path being processed when the event fired.
    """

    count: int
    phase: str
    current_path: str | None = None


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of a directory scan.

    Attributes:
        root: Directory that was scanned.
        records: Regular files collected, in traversal order.
        limit_reached: True if the file cap stopped the walk early.
        cancelled: True if the scan was cancelled before completion.
        errors: (path, message) pairs for entries that could not be read.
    """

    root: str
    records: tuple[FileRecord, ...]
    limit_reached: bool = False
    cancelled: bool = False
    errors: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class ItemError:
    """Failure of one item inside a batch operation."""

    path: str
    error_kind: ErrorKind
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "error_kind": self.error_kind.value, "message": self.message}


@dataclass(frozen=True, slots=True)
class BanishResult:
    """Result of moving one file into the graveyard.

    Attributes:
        path: Original path of the file.
        success: Whether the file was moved.
        graveyard_path: Destination inside the graveyard.
        undo_id: Single-use undo token (set by the engine).
        logged: False when the move succeeded but the log append failed.
        error: Error message if the operation failed.
        error_kind: Category of the failure.
    """

    path: str
    success: bool
    graveyard_path: str | None = None
    undo_id: str | None = None
    logged: bool = True
    error: str | None = None
    error_kind: ErrorKind | None = None


@dataclass(frozen=True, slots=True)
class RestoreResult:
    """Result of moving one file back out of the graveyard."""

    graveyard_path: str
    success: bool
    restored_path: str | None = None
    logged: bool = True
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def is_conflict(self) -> bool:
        return self.error_kind == ErrorKind.CONFLICT


@dataclass(frozen=True, slots=True)
class UndoResult:
    """Result of consuming a single-operation undo token."""

    undo_id: str
    success: bool
    restored_path: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None


@dataclass(frozen=True, slots=True)
class SessionUndoResult:
    """Result of undoing a whole swift-purge session.

    ``success`` is True only if the session was accepted and every pair
    was restored. A rejected session (unknown, consumed, expired) carries
    ``error_kind`` and an empty error list.
    """

    session_id: str
    restored_count: int = 0
    errors: tuple[ItemError, ...] = ()
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def success(self) -> bool:
        return self.error_kind is None and not self.errors


@dataclass(frozen=True, slots=True)
class PurgeResult:
    """Result of a swift purge (bulk banish) run.

    Attributes:
        session_id: Identifier of the undo session covering the moved files.
        purged_count: Number of files moved into the graveyard.
        bytes_freed: Sum of the sizes of moved files.
        errors: Per-file failures, in input order.
        expires_at: End of the bulk-undo window (None if nothing moved).
        moved: (original_path, graveyard_path) pairs that were moved.
    """

    session_id: str
    purged_count: int = 0
    bytes_freed: int = 0
    errors: tuple[ItemError, ...] = ()
    expires_at: datetime | None = None
    moved: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return not self.errors
