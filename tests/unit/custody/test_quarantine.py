"""Unit tests for QuarantineStore.

Tests for banish and restore, collision handling, the cross-device
fallback and move-then-log ordering.
"""

import errno
import os
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from gravekeeper.core.errors import ErrorKind
from gravekeeper.custody.guard import PathGuard
from gravekeeper.custody.quarantine import QuarantineStore
from gravekeeper.models.log_entry import LogAction
from gravekeeper.models.record import Tag
from gravekeeper.storage.graveyard_log import GraveyardLog


class TestBanish:
    """Tests for QuarantineStore.banish."""

    def test_moves_file_and_logs(
        self, store: QuarantineStore, graveyard_log: GraveyardLog, workdir: Path
    ) -> None:
        """The file lands in the graveyard and one Banish entry is appended."""
        source = workdir / "old.log"
        source.write_bytes(b"data")

        result = store.banish(str(source), tags=[Tag.GHOST])

        assert result.success is True
        assert result.logged is True
        assert not source.exists()
        assert Path(result.graveyard_path).read_bytes() == b"data"

        [entry] = graveyard_log.query()
        assert entry.action == LogAction.BANISH
        assert entry.original_path == str(source)
        assert entry.graveyard_path == result.graveyard_path
        assert entry.classifications == (Tag.GHOST,)
        assert entry.file_size == 4

    def test_mirrors_path_relative_to_root(
        self, store: QuarantineStore, graveyard_dir: Path, workdir: Path
    ) -> None:
        """With a root, the graveyard keeps the path below that root."""
        source = workdir / "photos" / "2019" / "img.jpg"
        source.parent.mkdir(parents=True)
        source.write_bytes(b"jpg")

        result = store.banish(str(source), root=str(workdir))

        assert result.graveyard_path == str(graveyard_dir / "photos" / "2019" / "img.jpg")

    def test_mirrors_absolute_path_without_root(
        self, store: QuarantineStore, graveyard_dir: Path, workdir: Path
    ) -> None:
        """Without a root, the whole absolute path is mirrored."""
        source = workdir / "a.txt"
        source.write_bytes(b"a")

        result = store.banish(str(source))

        expected = graveyard_dir.joinpath(*source.parts[1:])
        assert result.graveyard_path == str(expected)

    def test_collision_gets_suffix(self, store: QuarantineStore, workdir: Path) -> None:
        """A second file with the same mirrored path is never overwritten."""
        source = workdir / "report.pdf"
        source.write_bytes(b"first")
        first = store.banish(str(source), root=str(workdir))
        source.write_bytes(b"second")
        second = store.banish(str(source), root=str(workdir))
        source.write_bytes(b"third")
        third = store.banish(str(source), root=str(workdir))

        assert Path(first.graveyard_path).name == "report.pdf"
        assert Path(second.graveyard_path).name == "report (1).pdf"
        assert Path(third.graveyard_path).name == "report (2).pdf"
        assert Path(first.graveyard_path).read_bytes() == b"first"
        assert Path(second.graveyard_path).read_bytes() == b"second"

    def test_missing_file(
        self, store: QuarantineStore, graveyard_log: GraveyardLog, workdir: Path
    ) -> None:
        """A vanished file fails with NOT_FOUND and nothing is logged."""
        result = store.banish(str(workdir / "nope.txt"))

        assert result.success is False
        assert result.error_kind == ErrorKind.NOT_FOUND
        assert graveyard_log.query() == []

    def test_directory_refused(self, store: QuarantineStore, workdir: Path) -> None:
        """Only regular files can be banished."""
        (workdir / "dir").mkdir()

        result = store.banish(str(workdir / "dir"))

        assert result.success is False
        assert result.error_kind == ErrorKind.IO_ERROR

    def test_forbidden_path(self, store: QuarantineStore, workdir: Path) -> None:
        """Files under forbidden trees are refused before any move."""
        source = workdir / ".git" / "config"
        source.parent.mkdir()
        source.write_bytes(b"[core]")

        result = store.banish(str(source))

        assert result.error_kind == ErrorKind.FORBIDDEN_PATH
        assert source.exists()

    def test_file_in_graveyard_refused(
        self, graveyard_dir: Path, graveyard_log: GraveyardLog, workdir: Path
    ) -> None:
        """A file already in the graveyard cannot be banished again."""
        # Guard without the graveyard in its deny-list, to reach the store's own check
        store = QuarantineStore(graveyard_dir, graveyard_log, PathGuard())
        inside = graveyard_dir / "x.txt"
        inside.parent.mkdir(parents=True)
        inside.write_bytes(b"x")

        result = store.banish(str(inside))

        assert result.error_kind == ErrorKind.FORBIDDEN_PATH

    def test_permission_error_reported(
        self, store: QuarantineStore, graveyard_log: GraveyardLog, workdir: Path
    ) -> None:
        """A failed move is a typed PERMISSION_DENIED result, not an exception."""
        source = workdir / "locked.txt"
        source.write_bytes(b"x")

        denied = PermissionError(errno.EACCES, "Permission denied")
        with patch("gravekeeper.custody.quarantine.os.link", side_effect=denied):
            result = store.banish(str(source))

        assert result.success is False
        assert result.error_kind == ErrorKind.PERMISSION_DENIED
        assert source.exists()
        assert graveyard_log.query() == []

    def test_log_failure_leaves_orphan(
        self, store: QuarantineStore, graveyard_log: GraveyardLog, workdir: Path
    ) -> None:
        """If the append fails after the move, the file stays moved but unlogged."""
        source = workdir / "a.txt"
        source.write_bytes(b"a")

        with patch.object(graveyard_log, "append", side_effect=OSError("disk full")):
            result = store.banish(str(source))

        assert result.success is True
        assert result.logged is False
        assert result.error_kind == ErrorKind.ORPHAN
        assert Path(result.graveyard_path).exists()
        assert graveyard_log.query() == []


def _exdev_once() -> Callable[[str, str], None]:
    """Fake link that fails across devices on its first call only."""
    real_link = os.link
    calls = {"n": 0}

    def fake_link(src: str, dst: str) -> None:
        calls["n"] += 1
        if calls["n"] == 1:
            raise OSError(errno.EXDEV, "Invalid cross-device link")
        real_link(src, dst)

    return fake_link


class TestCrossDeviceMove:
    """Tests for the copy-verify-delete fallback."""

    def test_falls_back_to_copy(self, store: QuarantineStore, workdir: Path) -> None:
        """EXDEV triggers a verified copy and removal of the source."""
        source = workdir / "movie.bin"
        source.write_bytes(b"frames" * 1000)

        with patch("gravekeeper.custody.quarantine.os.link", side_effect=_exdev_once()):
            result = store.banish(str(source))

        assert result.success is True
        assert not source.exists()
        destination = Path(result.graveyard_path)
        assert destination.read_bytes() == b"frames" * 1000
        assert not list(destination.parent.glob(".gk-partial-*"))

    def test_failed_verification_keeps_source(self, store: QuarantineStore, workdir: Path) -> None:
        """A copy that does not verify is discarded and the source stays."""
        source = workdir / "movie.bin"
        source.write_bytes(b"frames")

        with (
            patch("gravekeeper.custody.quarantine.os.link", side_effect=_exdev_once()),
            patch("gravekeeper.custody.quarantine.file_digest", side_effect=["aaa", "bbb"]),
        ):
            result = store.banish(str(source))

        assert result.success is False
        assert result.error_kind == ErrorKind.IO_ERROR
        assert source.read_bytes() == b"frames"


class TestNoReplace:
    """A name taken between the existence check and the move is never overwritten."""

    def test_banish_takes_next_name(
        self, store: QuarantineStore, graveyard_dir: Path, workdir: Path
    ) -> None:
        """Banish moves on to the next free name instead of replacing."""
        source = workdir / "a.txt"
        source.write_bytes(b"mine")
        taken = graveyard_dir / "a.txt"
        real_free = QuarantineStore._free_destination
        calls: list[Path] = []

        def stale_free(destination: Path) -> Path:
            calls.append(destination)
            if len(calls) == 1:
                taken.write_bytes(b"theirs")
                return destination
            return real_free(destination)

        with patch.object(QuarantineStore, "_free_destination", side_effect=stale_free):
            result = store.banish(str(source), root=str(workdir))

        assert result.success is True
        assert Path(result.graveyard_path).name == "a (1).txt"
        assert Path(result.graveyard_path).read_bytes() == b"mine"
        assert taken.read_bytes() == b"theirs"

    def test_restore_reports_conflict(
        self, store: QuarantineStore, graveyard_log: GraveyardLog, workdir: Path
    ) -> None:
        """Restore yields CONFLICT and leaves both files untouched."""
        source = workdir / "a.txt"
        source.write_bytes(b"old")
        banished = store.banish(str(source))
        real_lexists = os.path.lexists

        def racing_lexists(path: str) -> bool:
            if str(path) == str(source):
                source.write_bytes(b"newer")
                return False
            return real_lexists(path)

        with patch("gravekeeper.custody.quarantine.os.path.lexists", side_effect=racing_lexists):
            result = store.restore(banished.graveyard_path, str(source))

        assert result.error_kind == ErrorKind.CONFLICT
        assert source.read_bytes() == b"newer"
        assert Path(banished.graveyard_path).read_bytes() == b"old"
        assert len(graveyard_log.current_graveyard()) == 1


class TestRestore:
    """Tests for QuarantineStore.restore."""

    def test_restore_moves_back_and_logs(
        self, store: QuarantineStore, graveyard_log: GraveyardLog, workdir: Path
    ) -> None:
        """A banished file goes back to its original path with a Restore entry."""
        source = workdir / "a.txt"
        source.write_bytes(b"a")
        banished = store.banish(str(source))

        result = store.restore(banished.graveyard_path, str(source))

        assert result.success is True
        assert result.restored_path == str(source)
        assert source.read_bytes() == b"a"
        assert graveyard_log.current_graveyard() == []
        assert [e.action for e in graveyard_log.query()] == [LogAction.BANISH, LogAction.RESTORE]

    def test_restore_recreates_parent_dirs(self, store: QuarantineStore, workdir: Path) -> None:
        """Missing parent directories of the original path are recreated."""
        source = workdir / "deep" / "dir" / "a.txt"
        source.parent.mkdir(parents=True)
        source.write_bytes(b"a")
        banished = store.banish(str(source))
        source.parent.rmdir()

        result = store.restore(banished.graveyard_path, str(source))

        assert result.success is True
        assert source.exists()

    def test_restore_prunes_empty_graveyard_dirs(
        self, store: QuarantineStore, graveyard_dir: Path, workdir: Path
    ) -> None:
        """Directories emptied by a restore are removed, the root is kept."""
        source = workdir / "sub" / "a.txt"
        source.parent.mkdir()
        source.write_bytes(b"a")
        banished = store.banish(str(source), root=str(workdir))

        store.restore(banished.graveyard_path, str(source))

        assert not (graveyard_dir / "sub").exists()
        assert graveyard_dir.exists()

    def test_conflict_never_overwrites(
        self, store: QuarantineStore, graveyard_log: GraveyardLog, workdir: Path
    ) -> None:
        """An occupied original path yields CONFLICT and both files are untouched."""
        source = workdir / "a.txt"
        source.write_bytes(b"old")
        banished = store.banish(str(source))
        source.write_bytes(b"new")

        result = store.restore(banished.graveyard_path, str(source))

        assert result.success is False
        assert result.is_conflict is True
        assert source.read_bytes() == b"new"
        assert Path(banished.graveyard_path).read_bytes() == b"old"
        assert len(graveyard_log.current_graveyard()) == 1

    def test_missing_graveyard_file(
        self, store: QuarantineStore, graveyard_dir: Path, workdir: Path
    ) -> None:
        """Restoring a graveyard path that does not exist is NOT_FOUND."""
        result = store.restore(str(graveyard_dir / "ghost.txt"), str(workdir / "ghost.txt"))

        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_path_outside_graveyard_refused(self, store: QuarantineStore, workdir: Path) -> None:
        """Only files inside the graveyard can be restored."""
        outside = workdir / "a.txt"
        outside.write_bytes(b"a")

        result = store.restore(str(outside), str(workdir / "b.txt"))

        assert result.error_kind == ErrorKind.FORBIDDEN_PATH
        assert outside.exists()

    def test_restore_to_other_location(self, store: QuarantineStore, workdir: Path) -> None:
        """A file can be restored somewhere other than its origin."""
        source = workdir / "a.txt"
        source.write_bytes(b"a")
        banished = store.banish(str(source))
        target = workdir / "elsewhere" / "a.txt"

        result = store.restore(banished.graveyard_path, str(target))

        assert result.success is True
        assert target.read_bytes() == b"a"


@pytest.mark.parametrize("name", ["archive.tar.gz", "noext", ".hidden"])
def test_collision_suffix_forms(store: QuarantineStore, workdir: Path, name: str) -> None:
    """The suffix goes before the last extension."""
    source = workdir / name
    source.write_bytes(b"1")
    store.banish(str(source), root=str(workdir))
    source.write_bytes(b"2")

    second = store.banish(str(source), root=str(workdir))

    stem, suffix = Path(name).stem, Path(name).suffix
    assert Path(second.graveyard_path).name == f"{stem} (1){suffix}"
