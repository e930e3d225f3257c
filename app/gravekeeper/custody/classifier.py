"""Classification policy: Ghosts, Zombies and Demons.

A record can carry several tags at once. Whitelisted paths always come
back with an empty tag set.
"""

import os
from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from gravekeeper.custody.duplicates import DuplicateGroup
from gravekeeper.models.record import ClassifiedFile, FileRecord, Tag

MIB = 1024 * 1024

# Bulky file types treated as Demons once they have sat untouched for a while
DEFAULT_DEMON_EXTENSIONS: tuple[str, ...] = (
    ".iso",
    ".zip",
    ".rar",
    ".7z",
    ".mp4",
    ".mkv",
    ".avi",
    ".mov",
    ".dmg",
    ".tar",
    ".gz",
)


@dataclass(frozen=True, slots=True)
class ClassifierPolicy:
    """Thresholds for the classification rules.

    Attributes:
        demon_threshold: Size in bytes at or above which a file is a Demon.
        stale_threshold: Age at or above which a file is a Ghost.
        demon_extensions: Lower-case extensions subject to the age-based
            Demon rule. Empty disables the rule.
        demon_extension_age: Age at or above which a bulky-extension file
            is a Demon regardless of its size.
    """

    demon_threshold: int = 500 * MIB
    stale_threshold: timedelta = timedelta(days=180)
    demon_extensions: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_DEMON_EXTENSIONS)
    )
    demon_extension_age: timedelta = timedelta(days=90)

    def __post_init__(self) -> None:
        if self.demon_threshold < 0:
            msg = f"demon_threshold must be non-negative, got {self.demon_threshold}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ClassificationSummary:
    """Tag counts and total size of tagged files."""

    ghosts: int = 0
    zombies: int = 0
    demons: int = 0
    tagged_files: int = 0
    tagged_bytes: int = 0


class Classifier:
    """Applies the age, duplication and size rules to scanned records.

    Args:
        policy: Thresholds to apply.
        now: Clock returning an aware datetime; injectable for tests.
    """

    def __init__(
        self,
        policy: ClassifierPolicy | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._policy = policy or ClassifierPolicy()
        self._now = now or (lambda: datetime.now(UTC))

    @property
    def policy(self) -> ClassifierPolicy:
        return self._policy

    def classify(
        self,
        records: Iterable[FileRecord],
        whitelist: Collection[str],
        duplicate_groups: Iterable[DuplicateGroup],
    ) -> list[ClassifiedFile]:
        """Tag every record.

        Args:
            records: Scanned records.
            whitelist: Paths that must never be tagged.
            duplicate_groups: Output of the DuplicateDetector.

        Returns:
            One ClassifiedFile per input record, in input order.
        """
        # Non-original member path -> path of the group original
        zombie_of: dict[str, str] = {}
        for group in duplicate_groups:
            for member in group.duplicates:
                zombie_of[member.path] = group.original.path

        now = self._now()
        classified: list[ClassifiedFile] = []

        for record in records:
            if record.path in whitelist:
                classified.append(ClassifiedFile(record=record))
                continue

            tags: set[Tag] = set()
            if self._is_demon(record, now):
                tags.add(Tag.DEMON)

            duplicate_of = zombie_of.get(record.path)
            if duplicate_of is not None:
                tags.add(Tag.ZOMBIE)
            elif now - record.last_modified >= self._policy.stale_threshold:
                # A duplicate's staleness is secondary to its duplication
                tags.add(Tag.GHOST)

            classified.append(
                ClassifiedFile(record=record, tags=frozenset(tags), duplicate_of=duplicate_of)
            )

        return classified

    def _is_demon(self, record: FileRecord, now: datetime) -> bool:
        if record.size >= self._policy.demon_threshold:
            return True

        if not self._policy.demon_extensions:
            return False
        ext = os.path.splitext(record.path)[1].lower()
        return (
            ext in self._policy.demon_extensions
            and now - record.last_modified >= self._policy.demon_extension_age
        )


def summarize(classified: Iterable[ClassifiedFile]) -> ClassificationSummary:
    """Count tags and tagged bytes across classified files."""
    ghosts = zombies = demons = tagged = tagged_bytes = 0
    for item in classified:
        if not item.tags:
            continue
        tagged += 1
        tagged_bytes += item.size
        ghosts += Tag.GHOST in item.tags
        zombies += Tag.ZOMBIE in item.tags
        demons += Tag.DEMON in item.tags

    return ClassificationSummary(
        ghosts=ghosts,
        zombies=zombies,
        demons=demons,
        tagged_files=tagged,
        tagged_bytes=tagged_bytes,
    )
