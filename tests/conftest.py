"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from gravekeeper.core.config import Settings, save_settings
from gravekeeper.core.engine import Gravekeeper
from gravekeeper.custody.guard import PathGuard
from gravekeeper.custody.quarantine import QuarantineStore
from gravekeeper.storage.graveyard_log import GraveyardLog
from gravekeeper.storage.whitelist import WhitelistStore

MIB = 1024 * 1024
DAY = 24 * 60 * 60

FileFactory = Callable[..., Path]


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Directory holding the files under test."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def graveyard_dir(tmp_path: Path) -> Path:
    """Quarantine root, kept apart from the files under test."""
    return tmp_path / "graveyard"


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    """Directory for the log and whitelist."""
    return tmp_path / "state"


@pytest.fixture
def make_file() -> FileFactory:
    """Factory writing a file with a given size or content and age.

    ``sparse=True`` truncates instead of writing, so large files cost no disk.
    """

    def _make(
        path: Path,
        size: int = 0,
        *,
        content: bytes | None = None,
        age_days: float = 0,
        sparse: bool = False,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if content is not None:
            path.write_bytes(content)
        elif sparse:
            with path.open("wb") as f:
                f.truncate(size)
        else:
            path.write_bytes(b"\0" * size)

        if age_days:
            mtime = time.time() - age_days * DAY
            os.utime(path, (mtime, mtime))
        return path

    return _make


@pytest.fixture
def guard(graveyard_dir: Path, state_dir: Path) -> PathGuard:
    """Default policy plus the graveyard and state directories."""
    return PathGuard(extra_forbidden=[graveyard_dir, state_dir])


@pytest.fixture
def graveyard_log(state_dir: Path) -> GraveyardLog:
    """Empty graveyard log in the state directory."""
    log = GraveyardLog(state_dir / "graveyard-log.jsonl")
    log.ensure()
    return log


@pytest.fixture
def whitelist(state_dir: Path) -> WhitelistStore:
    """Whitelist store in the state directory (not yet loaded)."""
    return WhitelistStore(state_dir / "whitelist.json")


@pytest.fixture
def store(graveyard_dir: Path, graveyard_log: GraveyardLog, guard: PathGuard) -> QuarantineStore:
    """Quarantine store wired to the test log and guard."""
    return QuarantineStore(graveyard_dir, graveyard_log, guard)


@pytest.fixture
def settings(graveyard_dir: Path, state_dir: Path) -> Settings:
    """Settings pointing every persisted path into tmp_path."""
    return Settings(graveyard_dir=graveyard_dir, state_dir=state_dir)


@pytest.fixture
def engine(settings: Settings) -> Iterator[Gravekeeper]:
    """Engine built from the test settings."""
    with Gravekeeper(settings) as gk:
        yield gk


@pytest.fixture
def config_file(tmp_path: Path, settings: Settings) -> Path:
    """Settings file for CLI runs, written from the test settings."""
    return save_settings(settings, tmp_path / "config.toml")
