"""Append-only graveyard log.

This module provides the GraveyardLog class, the single source of truth for
what is currently quarantined. Entries are persisted as JSON Lines and are
never edited or removed; a Restore entry compensates an earlier Banish.
"""

import json
import logging
import os
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from gravekeeper.models.log_entry import LogAction, LogEntry, LogFilter

logger = logging.getLogger(__name__)


class GraveyardLog:
    """Manages the graveyard log in a JSONL file.

    Each line is a complete JSON object representing a LogEntry. Appends
    are serialized through one lock and flushed to disk before returning.

    Attributes:
        path: Location of the JSONL file.
    """

    def __init__(self, path: Path) -> None:
        """Initialize GraveyardLog.

        Args:
            path: Path of the JSONL backing file. Created on first append.
        """
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def ensure(self) -> bool:
        """Make sure the backing file exists and is readable.

        A missing file is created empty. A file that cannot be decoded at all
        is moved aside to ``<name>.corrupt-<timestamp>`` and replaced by an
        empty log.

        Returns:
            True if a corrupt file was found and reset, False otherwise.
        """
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if not self._path.exists():
                self._path.touch()
                return False

            if self._is_wholly_corrupt():
                backup = self._path.with_name(
                    f"{self._path.name}.corrupt-{datetime.now(UTC).strftime('%Y%m%dT%H%M%S')}"
                )
                logger.warning(
                    "Graveyard log %s is unreadable; moved to %s and starting empty",
                    self._path,
                    backup,
                )
                os.replace(self._path, backup)
                self._path.touch()
                return True

        return False

    def append(self, entry: LogEntry) -> None:
        """Append an entry to the log.

        Creates the file and parent directories if they don't exist.

        Args:
            entry: The entry to record.

        Raises:
            OSError: If the file cannot be written.
        """
        data = (entry.to_json_line() + "\n").encode("utf-8")

        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open(mode="a+b") as f:
                # Terminate a torn last line left by an interrupted append
                if _ends_without_newline(f):
                    data = b"\n" + data
                f.write(data)
                f.flush()
                os.fsync(f.fileno())

        logger.debug("Logged %s for %s", entry.action.value, entry.file_path)

    def query(self, log_filter: LogFilter | None = None) -> list[LogEntry]:
        """Read entries in append order, optionally filtered.

        Args:
            log_filter: Criteria to apply. None returns every entry.

        Returns:
            Matching entries, oldest first. Empty if the file doesn't exist.
        """
        entries = self._read_entries()
        if log_filter is None:
            return entries
        return [entry for entry in entries if log_filter.matches(entry)]

    def current_graveyard(self) -> list[LogEntry]:
        """Compute what is currently quarantined.

        Pairs each Banish entry's graveyard path against later Restore
        entries with the same graveyard path and keeps the unmatched ones.

        Returns:
            Unmatched Banish entries in append order.
        """
        live: dict[str, LogEntry] = {}
        for entry in self._read_entries():
            if entry.graveyard_path is None:
                continue
            if entry.action == LogAction.BANISH:
                live.pop(entry.graveyard_path, None)
                live[entry.graveyard_path] = entry
            elif entry.action == LogAction.RESTORE:
                live.pop(entry.graveyard_path, None)

        return list(live.values())

    def entries_for_session(self, session_id: str) -> list[LogEntry]:
        """Return every entry recorded under a swift-purge session."""
        return [entry for entry in self._read_entries() if entry.session_id == session_id]

    def _read_entries(self) -> list[LogEntry]:
        if not self._path.exists():
            return []

        entries: list[LogEntry] = []
        try:
            with self._path.open(encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue

                    try:
                        entries.append(LogEntry.from_json_line(line))
                    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                        logger.warning(
                            "Skipping corrupt graveyard log line %d: %s",
                            line_num,
                            str(e),
                        )
        except UnicodeDecodeError as e:
            logger.warning("Graveyard log %s is not valid UTF-8: %s", self._path, e)
            return entries

        return entries

    def _is_wholly_corrupt(self) -> bool:
        try:
            text = self._path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return True

        lines = [line for line in text.splitlines() if line.strip()]
        if not lines:
            return False

        for line in lines:
            try:
                LogEntry.from_json_line(line)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                continue
            return False
        return True


def _ends_without_newline(f: BinaryIO) -> bool:
    """True if the open file is non-empty and its last byte is not a newline."""
    size = f.seek(0, os.SEEK_END)
    if size == 0:
        return False
    f.seek(size - 1)
    return f.read(1) != b"\n"
