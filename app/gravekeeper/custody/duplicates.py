"""Content-duplicate detection.

Two phases keep hashing to a minimum: records are first bucketed by size
(a file with a unique size cannot have a duplicate), and only members of
shared-size buckets are hashed with a streaming SHA-256 digest.
"""

import hashlib
import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from gravekeeper.models.record import FileRecord
from gravekeeper.models.results import ScanProgress

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024

PHASE_HASHING = "hashing"


def file_digest(path: str | Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Compute the SHA-256 hex digest of a file with bounded memory.

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def original_sort_key(record: FileRecord) -> tuple[float, str]:
    """Ordering that puts a group's original first.

    Earliest modification time wins; ties are broken by lexical path order.
    """
    return (record.last_modified.timestamp(), record.path)


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    """Files known to share identical content.

    Attributes:
        digest: SHA-256 hex digest shared by every member.
        size: Size in bytes shared by every member.
        members: At least two records, ordered so the original comes first.
    """

    digest: str
    size: int
    members: tuple[FileRecord, ...]

    def __post_init__(self) -> None:
        if len(self.members) < 2:
            msg = "A duplicate group needs at least two members"
            raise ValueError(msg)

    @property
    def original(self) -> FileRecord:
        return self.members[0]

    @property
    def duplicates(self) -> tuple[FileRecord, ...]:
        return self.members[1:]

    @property
    def reclaimable_bytes(self) -> int:
        return self.size * len(self.duplicates)


class DuplicateDetector:
    """Groups file records by content identity.

    Args:
        chunk_size: Read size for the streaming digest.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        self._chunk_size = chunk_size

    def detect(
        self,
        records: Iterable[FileRecord],
        cancel: threading.Event | None = None,
        on_progress: Callable[[ScanProgress], None] | None = None,
    ) -> list[DuplicateGroup]:
        """Find groups of two or more records with identical content.

        Cancellation is polled between size buckets; groups completed before
        cancellation are returned.

        Args:
            records: Scanned records.
            cancel: Event that, once set, stops hashing.
            on_progress: Called after each hashed file.

        Returns:
            Duplicate groups ordered by their original's path.
        """
        by_size: dict[int, list[FileRecord]] = defaultdict(list)
        seen_paths: set[str] = set()
        for record in records:
            if record.path in seen_paths:
                continue
            seen_paths.add(record.path)
            by_size[record.size].append(record)

        candidates = {size: bucket for size, bucket in by_size.items() if len(bucket) > 1}
        logger.debug(
            "%d of %d size buckets need hashing", len(candidates), len(by_size)
        )

        groups: list[DuplicateGroup] = []
        hashed = 0
        for size in sorted(candidates):
            if cancel is not None and cancel.is_set():
                logger.info("Duplicate detection cancelled after %d files", hashed)
                break

            by_digest: dict[str, list[FileRecord]] = defaultdict(list)
            for record in candidates[size]:
                try:
                    digest = file_digest(record.path, self._chunk_size)
                except OSError as e:
                    logger.warning("Cannot hash %s: %s", record.path, e)
                    continue

                by_digest[digest].append(record)
                hashed += 1
                if on_progress is not None:
                    on_progress(
                        ScanProgress(count=hashed, phase=PHASE_HASHING, current_path=record.path)
                    )

            for digest, members in by_digest.items():
                if len(members) > 1:
                    groups.append(
                        DuplicateGroup(
                            digest=digest,
                            size=size,
                            members=tuple(sorted(members, key=original_sort_key)),
                        )
                    )

        groups.sort(key=lambda group: group.original.path)
        return groups
