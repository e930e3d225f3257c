"""Persisted whitelist of paths excluded from classification.

The whitelist is a single JSON record (``{"files": [...]}``) that is read,
modified and rewritten as a whole on every mutation. Mutations are
serialized through one lock so two concurrent ``add`` calls cannot clobber
each other.
"""

import json
import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path
from tempfile import NamedTemporaryFile

logger = logging.getLogger(__name__)


class WhitelistStore:
    """Durable set of whitelisted path strings.

    Args:
        path: Location of the JSON backing record.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._files: set[str] = set()
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> bool:
        """Load the whitelist from disk.

        A missing or unparseable record is treated as an empty whitelist and
        immediately re-persisted.

        Returns:
            True if the backing record had to be (re)initialized.
        """
        with self._lock:
            files, reset = self._read()
            self._files = files
            self._loaded = True
            if reset:
                self._write(files)
            return reset

    def add(self, path: str) -> None:
        """Add a path to the whitelist and persist the full set.

        Raises:
            OSError: If the record cannot be written.
        """
        if not path:
            msg = "Whitelist path cannot be empty"
            raise ValueError(msg)
        self._mutate(lambda files: files.add(path))
        logger.info("Whitelisted %s", path)

    def remove(self, path: str) -> None:
        """Remove a path from the whitelist (no-op if absent) and persist."""
        self._mutate(lambda files: files.discard(path))
        logger.info("Removed %s from whitelist", path)

    def has(self, path: str) -> bool:
        self._ensure_loaded()
        with self._lock:
            return path in self._files

    def all(self) -> list[str]:
        """Return all whitelisted paths, sorted."""
        self._ensure_loaded()
        with self._lock:
            return sorted(self._files)

    def snapshot(self) -> frozenset[str]:
        """Return an immutable copy for use by the classifier."""
        self._ensure_loaded()
        with self._lock:
            return frozenset(self._files)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.has(path)

    def __len__(self) -> int:
        self._ensure_loaded()
        with self._lock:
            return len(self._files)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _mutate(self, change: Callable[[set[str]], None]) -> None:
        self._ensure_loaded()
        with self._lock:
            # Re-read so a change written by another store instance survives.
            files, _ = self._read()
            change(files)
            self._write(files)
            self._files = files

    def _read(self) -> tuple[set[str], bool]:
        if not self._path.exists():
            return set(), True

        try:
            with self._path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Whitelist %s is unreadable, starting empty: %s", self._path, e)
            return set(), True

        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, list) or not all(isinstance(p, str) for p in files):
            logger.warning("Whitelist %s has an invalid structure, starting empty", self._path)
            return set(), True

        return set(files), False

    def _write(self, files: set[str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                json.dump({"files": sorted(files)}, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            # os.replace() is atomic on POSIX
            os.replace(tmp_path, self._path)
        except OSError:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise
