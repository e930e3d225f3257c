"""Scanned and classified file records.

This module defines the immutable records produced by the scanner and the
classifier, together with the classification tag set.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class Tag(str, Enum):
    """Classification tag attached to a file.

    Attributes:
        GHOST: Stale file, unmodified beyond the age threshold.
        ZOMBIE: Non-original member of a content-duplicate group.
        DEMON: Oversized file beyond the byte threshold.
    """

    GHOST = "ghost"
    ZOMBIE = "zombie"
    DEMON = "demon"


# Display precedence, highest first. Presentation only.
TAG_PRECEDENCE: tuple[Tag, ...] = (Tag.DEMON, Tag.GHOST, Tag.ZOMBIE)


@dataclass(frozen=True, slots=True)
class FileRecord:
    """A regular file discovered during a scan.

    Attributes:
        path: Absolute filesystem path.
        size: Size in bytes.
        last_modified: Last modification time (timezone-aware, UTC).
    """

    path: str
    size: int
    last_modified: datetime

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.path:
            msg = "Path cannot be empty"
            raise ValueError(msg)
        if self.size < 0:
            msg = f"Size must be non-negative, got {self.size}"
            raise ValueError(msg)
        if self.last_modified.tzinfo is None:
            msg = f"last_modified must be timezone-aware, got {self.last_modified.isoformat()}"
            raise ValueError(msg)

    @classmethod
    def from_stat(cls, path: str, st_size: int, st_mtime: float) -> "FileRecord":
        """Build a record from ``os.stat`` fields."""
        return cls(
            path=path,
            size=st_size,
            last_modified=datetime.fromtimestamp(st_mtime, tz=UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output.

        Returns:
            Dictionary representation of the record.
        """
        return {
            "path": self.path,
            "size": self.size,
            "last_modified": self.last_modified.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class ClassifiedFile:
    """A file record together with the tags the classifier assigned.

    An empty ``tags`` set means either the path is whitelisted or no rule
    matched; callers that care must check the whitelist themselves.

    Attributes:
        record: The scanned file.
        tags: Zero to three classification tags.
        duplicate_of: Path of the group original when tagged ZOMBIE.
    """

    record: FileRecord
    tags: frozenset[Tag] = field(default_factory=frozenset)
    duplicate_of: str | None = None

    @property
    def path(self) -> str:
        return self.record.path

    @property
    def size(self) -> int:
        return self.record.size

    @property
    def is_tagged(self) -> bool:
        return bool(self.tags)

    @property
    def primary_tag(self) -> Tag | None:
        """Tag to display first, by precedence DEMON > GHOST > ZOMBIE."""
        for tag in TAG_PRECEDENCE:
            if tag in self.tags:
                return tag
        return None

    def sorted_tags(self) -> list[Tag]:
        """Return tags ordered by display precedence."""
        return [tag for tag in TAG_PRECEDENCE if tag in self.tags]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result = self.record.to_dict()
        result["tags"] = [tag.value for tag in self.sorted_tags()]
        if self.duplicate_of is not None:
            result["duplicate_of"] = self.duplicate_of
        return result
