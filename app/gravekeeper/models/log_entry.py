"""Graveyard log entry model.

This module defines the immutable records appended to the graveyard log,
the single source of truth for what is currently quarantined.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from gravekeeper.models.record import Tag


class LogAction(str, Enum):
    """Custody-changing action recorded in the log.

    Attributes:
        BANISH: File moved into the graveyard.
        RESTORE: File moved back out of the graveyard.
        RESURRECT: Path added to the whitelist.
    """

    BANISH = "banish"
    RESTORE = "restore"
    RESURRECT = "resurrect"


@dataclass(frozen=True, slots=True)
class LogEntry:
    """Record of a single custody action.

    Attributes:
        timestamp: When the action happened (ISO 8601 with timezone).
        action: Type of action.
        file_path: Path the action was about.
        original_path: Where the file lived before banishment.
        graveyard_path: Where the file lives inside the graveyard.
        classifications: Tags the file carried when banished.
        file_size: Size in bytes at the time of the action.
        session_id: Swift-purge session the action belonged to.
    """

    timestamp: str
    action: LogAction
    file_path: str
    original_path: str | None = None
    graveyard_path: str | None = None
    classifications: tuple[Tag, ...] | None = None
    file_size: int | None = None
    session_id: str | None = None

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.timestamp:
            msg = "Timestamp cannot be empty"
            raise ValueError(msg)
        if not self.file_path:
            msg = "File path cannot be empty"
            raise ValueError(msg)
        if self.action in (LogAction.BANISH, LogAction.RESTORE) and not self.graveyard_path:
            msg = f"{self.action.value} entries require a graveyard path"
            raise ValueError(msg)

    @property
    def timestamp_dt(self) -> datetime:
        """Timestamp parsed as an aware datetime."""
        dt = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Optional fields are omitted when unset.
        """
        result: dict[str, Any] = {
            "timestamp": self.timestamp,
            "action": self.action.value,
            "file_path": self.file_path,
        }
        if self.original_path is not None:
            result["original_path"] = self.original_path
        if self.graveyard_path is not None:
            result["graveyard_path"] = self.graveyard_path
        if self.classifications is not None:
            result["classifications"] = [tag.value for tag in self.classifications]
        if self.file_size is not None:
            result["file_size"] = self.file_size
        if self.session_id is not None:
            result["session_id"] = self.session_id
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If action or tag values are invalid.
        """
        classifications = data.get("classifications")
        return cls(
            timestamp=data["timestamp"],
            action=LogAction(data["action"]),
            file_path=data["file_path"],
            original_path=data.get("original_path"),
            graveyard_path=data.get("graveyard_path"),
            classifications=(
                tuple(Tag(tag) for tag in classifications) if classifications is not None else None
            ),
            file_size=data.get("file_size"),
            session_id=data.get("session_id"),
        )

    def to_json_line(self) -> str:
        """Serialize to JSON line for JSONL storage (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "LogEntry":
        """Deserialize from JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        data = json.loads(line.strip())
        if not isinstance(data, dict):
            msg = "Log line is not a JSON object"
            raise ValueError(msg)
        return cls.from_dict(data)


@dataclass(frozen=True, slots=True)
class LogFilter:
    """Criteria for querying the graveyard log.

    All criteria are optional and combined with AND. Date bounds are
    inclusive.
    """

    action: LogAction | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def matches(self, entry: LogEntry) -> bool:
        """Check whether an entry satisfies every criterion."""
        if self.action is not None and entry.action != self.action:
            return False
        if self.start_date is None and self.end_date is None:
            return True

        when = entry.timestamp_dt
        if self.start_date is not None and when < _aware(self.start_date):
            return False
        return not (self.end_date is not None and when > _aware(self.end_date))


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def create_log_entry(
    action: LogAction,
    file_path: str,
    *,
    original_path: str | None = None,
    graveyard_path: str | None = None,
    classifications: list[Tag] | tuple[Tag, ...] | frozenset[Tag] | None = None,
    file_size: int | None = None,
    session_id: str | None = None,
) -> LogEntry:
    """Factory function to create a new LogEntry stamped with the current time.

    Tags are stored in a stable order so that identical tag sets always
    serialize identically.
    """
    tags: tuple[Tag, ...] | None = None
    if classifications is not None:
        tags = tuple(sorted(set(classifications), key=lambda tag: tag.value))

    return LogEntry(
        timestamp=datetime.now(UTC).isoformat(),
        action=action,
        file_path=file_path,
        original_path=original_path,
        graveyard_path=graveyard_path,
        classifications=tags,
        file_size=file_size,
        session_id=session_id,
    )
