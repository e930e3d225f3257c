"""Undo tokens and swift-purge undo sessions.

Tokens and sessions live in memory only; they are conveniences layered on
top of the graveyard log, which stays authoritative for manual restore.
"""

import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from gravekeeper.core.errors import ErrorKind
from gravekeeper.custody.quarantine import QuarantineStore
from gravekeeper.models.results import ItemError, SessionUndoResult, UndoResult

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(seconds=30)


@dataclass(slots=True)
class UndoToken:
    """Single-use handle that reverses one banish."""

    undo_id: str
    original_path: str
    graveyard_path: str
    created_at: datetime
    consumed: bool = False


@dataclass(slots=True)
class UndoSession:
    """Bulk-undo window covering every file moved by one swift purge.

    Attributes:
        session_id: Unique session identifier.
        pairs: (original_path, graveyard_path) for every moved file.
        expires_at: After this instant the session can no longer be undone.
        consumed: Set once an undo has been attempted.
    """

    session_id: str
    pairs: tuple[tuple[str, str], ...]
    expires_at: datetime
    consumed: bool = False

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class UndoCoordinator:
    """Issues undo tokens and sessions and redeems them exactly once.

    A token is spent only by a successful restore, so a CONFLICT can be
    retried once the original location is cleared. A session is spent by
    its first undo attempt, even if some files fail to restore.

    Args:
        store: Quarantine store used to move files back.
        token_ttl: Lifetime of single-operation tokens (None: no expiry).
        session_ttl: Length of the bulk-undo window.
        now: Clock override, used by tests.
    """

    def __init__(
        self,
        store: QuarantineStore,
        *,
        token_ttl: timedelta | None = None,
        session_ttl: timedelta = DEFAULT_SESSION_TTL,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._token_ttl = token_ttl
        self._session_ttl = session_ttl
        self._now = now or (lambda: datetime.now(UTC))
        self._tokens: dict[str, UndoToken] = {}
        self._sessions: dict[str, UndoSession] = {}
        self._lock = threading.Lock()

    @property
    def session_ttl(self) -> timedelta:
        return self._session_ttl

    def register(self, original_path: str, graveyard_path: str) -> str:
        """Issue a fresh undo token for a completed banish."""
        undo_id = uuid.uuid4().hex
        with self._lock:
            self._tokens[undo_id] = UndoToken(
                undo_id=undo_id,
                original_path=original_path,
                graveyard_path=graveyard_path,
                created_at=self._now(),
            )
        return undo_id

    def undo(self, undo_id: str) -> UndoResult:
        """Reverse one banish.

        Returns:
            UndoResult. NOT_FOUND for unknown ids, ALREADY_CONSUMED for
            spent tokens, EXPIRED past the token lifetime, otherwise the
            outcome of the restore itself.
        """
        with self._lock:
            token = self._tokens.get(undo_id)
            if token is None:
                return _undo_failure(undo_id, ErrorKind.NOT_FOUND, f"Unknown undo id: {undo_id}")
            if token.consumed:
                return _undo_failure(
                    undo_id, ErrorKind.ALREADY_CONSUMED, f"Undo id already used: {undo_id}"
                )
            if self._token_ttl is not None and self._now() >= token.created_at + self._token_ttl:
                return _undo_failure(undo_id, ErrorKind.EXPIRED, f"Undo id expired: {undo_id}")

            result = self._store.restore(token.graveyard_path, token.original_path)
            if not result.success:
                kind = result.error_kind or ErrorKind.IO_ERROR
                return _undo_failure(undo_id, kind, result.error or "Restore failed")

            token.consumed = True

        logger.debug("Undo %s restored %s", undo_id, result.restored_path)
        return UndoResult(undo_id=undo_id, success=True, restored_path=result.restored_path)

    def open_session(
        self, pairs: Iterable[tuple[str, str]], session_id: str | None = None
    ) -> UndoSession:
        """Open a bulk-undo window over (original, graveyard) pairs."""
        session = UndoSession(
            session_id=session_id or uuid.uuid4().hex,
            pairs=tuple(pairs),
            expires_at=self._now() + self._session_ttl,
        )
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def undo_session(self, session_id: str) -> SessionUndoResult:
        """Restore every file of a swift-purge session.

        Per-file failures are collected; the session is consumed regardless.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return _session_failure(
                    session_id, ErrorKind.NOT_FOUND, f"Unknown session: {session_id}"
                )
            if session.consumed:
                return _session_failure(
                    session_id, ErrorKind.ALREADY_CONSUMED, f"Session already undone: {session_id}"
                )
            if session.is_expired(self._now()):
                return _session_failure(
                    session_id, ErrorKind.EXPIRED, f"Undo window closed for session: {session_id}"
                )
            session.consumed = True

            restored = 0
            errors: list[ItemError] = []
            for original_path, graveyard_path in session.pairs:
                result = self._store.restore(graveyard_path, original_path)
                if result.success:
                    restored += 1
                else:
                    errors.append(
                        ItemError(
                            path=original_path,
                            error_kind=result.error_kind or ErrorKind.IO_ERROR,
                            message=result.error or "Restore failed",
                        )
                    )

        logger.info(
            "Session %s undone: %d restored, %d failed", session_id, restored, len(errors)
        )
        return SessionUndoResult(
            session_id=session_id, restored_count=restored, errors=tuple(errors)
        )

    def active_sessions(self) -> list[UndoSession]:
        """Sessions that can still be undone, soonest expiry first."""
        now = self._now()
        with self._lock:
            live = [s for s in self._sessions.values() if not s.consumed and not s.is_expired(now)]
        return sorted(live, key=lambda s: s.expires_at)

    def prune(self) -> int:
        """Forget expired tokens and sessions.

        Spent entries are kept until they expire so that a repeat attempt
        still reports ALREADY_CONSUMED. Pruned ids report NOT_FOUND.

        Returns:
            Number of entries dropped.
        """
        now = self._now()
        with self._lock:
            dead_sessions = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
            dead_tokens = []
            if self._token_ttl is not None:
                dead_tokens = [
                    tid
                    for tid, t in self._tokens.items()
                    if now >= t.created_at + self._token_ttl
                ]
            for sid in dead_sessions:
                del self._sessions[sid]
            for tid in dead_tokens:
                del self._tokens[tid]
        return len(dead_sessions) + len(dead_tokens)


def _undo_failure(undo_id: str, kind: ErrorKind, message: str) -> UndoResult:
    return UndoResult(undo_id=undo_id, success=False, error=message, error_kind=kind)


def _session_failure(session_id: str, kind: ErrorKind, message: str) -> SessionUndoResult:
    return SessionUndoResult(session_id=session_id, error=message, error_kind=kind)
