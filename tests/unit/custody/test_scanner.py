"""Unit tests for Scanner.

Tests for traversal, the file cap, cancellation, progress reporting and
symlink handling.
"""

import threading
from pathlib import Path

import pytest
from gravekeeper.custody.guard import PathGuard
from gravekeeper.custody.scanner import PHASE_COMPLETE, PHASE_SCANNING, Scanner
from gravekeeper.models.results import ScanProgress


@pytest.fixture
def scanner(guard: PathGuard) -> Scanner:
    """Scanner with the default test guard."""
    return Scanner(guard)


def _touch_many(directory: Path, count: int) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for i in range(count):
        (directory / f"file-{i:05d}.txt").write_bytes(b"x")


class TestScannerTraversal:
    """Tests for basic traversal."""

    def test_collects_regular_files_recursively(self, scanner: Scanner, workdir: Path) -> None:
        """Files in nested directories are found with their sizes."""
        (workdir / "a.txt").write_bytes(b"12345")
        (workdir / "sub" / "deeper").mkdir(parents=True)
        (workdir / "sub" / "deeper" / "b.txt").write_bytes(b"1")

        result = scanner.scan(workdir)

        sizes = {Path(r.path).name: r.size for r in result.records}
        assert sizes == {"a.txt": 5, "b.txt": 1}
        assert result.limit_reached is False
        assert result.cancelled is False

    def test_records_use_absolute_paths(
        self, scanner: Scanner, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Record paths are absolute even for a relative root."""
        (workdir / "a.txt").write_bytes(b"1")
        monkeypatch.chdir(workdir.parent)

        result = scanner.scan(workdir.name)

        assert result.records[0].path == str(workdir / "a.txt")

    def test_empty_directory(self, scanner: Scanner, workdir: Path) -> None:
        """An empty directory yields no records."""
        result = scanner.scan(workdir)

        assert result.records == ()
        assert result.errors == ()

    def test_forbidden_root_refused(self, scanner: Scanner) -> None:
        """A forbidden root returns no records and an error."""
        result = scanner.scan("/etc")

        assert result.records == ()
        assert result.errors == (("/etc", "Forbidden path"),)

    def test_forbidden_subdirectory_skipped(self, scanner: Scanner, workdir: Path) -> None:
        """Forbidden subtrees such as .git are never entered."""
        (workdir / "keep.txt").write_bytes(b"1")
        (workdir / ".git").mkdir()
        (workdir / ".git" / "HEAD").write_bytes(b"ref")
        (workdir / "node_modules" / "pkg").mkdir(parents=True)
        (workdir / "node_modules" / "pkg" / "index.js").write_bytes(b"1")

        result = scanner.scan(workdir)

        assert [Path(r.path).name for r in result.records] == ["keep.txt"]

    def test_graveyard_never_scanned(
        self, scanner: Scanner, tmp_path: Path, graveyard_dir: Path
    ) -> None:
        """The quarantine root is off limits even inside a scanned tree."""
        (graveyard_dir / "old").mkdir(parents=True)
        (graveyard_dir / "old" / "x.bin").write_bytes(b"1")
        (tmp_path / "note.txt").write_bytes(b"1")

        result = scanner.scan(tmp_path)

        assert all(not r.path.startswith(str(graveyard_dir)) for r in result.records)


class TestScannerCap:
    """Tests for the file cap."""

    def test_cap_stops_walk(self, scanner: Scanner, workdir: Path) -> None:
        """1,500 files with a cap of 1,000 yields exactly 1,000 and the flag."""
        _touch_many(workdir / "a", 700)
        _touch_many(workdir / "b", 800)

        result = scanner.scan(workdir, cap=1000)

        assert len(result.records) == 1000
        assert result.limit_reached is True

    def test_cap_not_reached(self, scanner: Scanner, workdir: Path) -> None:
        """Exactly ``cap`` files does not set the flag."""
        _touch_many(workdir, 10)

        result = scanner.scan(workdir, cap=10)

        assert len(result.records) == 10
        assert result.limit_reached is False

    def test_negative_cap_rejected(self, scanner: Scanner, workdir: Path) -> None:
        """A negative cap raises ValueError."""
        with pytest.raises(ValueError, match="cap"):
            scanner.scan(workdir, cap=-1)


class TestScannerProgressAndCancel:
    """Tests for progress events and cancellation."""

    def test_progress_is_periodic_and_monotonic(self, guard: PathGuard, workdir: Path) -> None:
        """Progress fires every interval and ends with a complete event."""
        _touch_many(workdir, 25)
        events: list[ScanProgress] = []

        Scanner(guard, progress_interval=10).scan(workdir, on_progress=events.append)

        scanning = [e.count for e in events if e.phase == PHASE_SCANNING]
        assert scanning == [10, 20]
        assert events[-1].phase == PHASE_COMPLETE
        assert events[-1].count == 25

    def test_cancel_before_start_returns_partial(self, scanner: Scanner, workdir: Path) -> None:
        """A pre-set cancel event returns an empty, cancelled result."""
        _touch_many(workdir, 5)
        cancel = threading.Event()
        cancel.set()

        result = scanner.scan(workdir, cancel=cancel)

        assert result.cancelled is True
        assert result.records == ()

    def test_cancel_mid_walk_keeps_collected_files(self, guard: PathGuard, workdir: Path) -> None:
        """Cancelling from a progress callback stops at the next directory."""
        for name in ("a", "b", "c"):
            _touch_many(workdir / name, 10)
        cancel = threading.Event()

        def on_progress(progress: ScanProgress) -> None:
            if progress.phase == PHASE_SCANNING:
                cancel.set()

        result = Scanner(guard, progress_interval=5).scan(
            workdir, on_progress=on_progress, cancel=cancel
        )

        assert result.cancelled is True
        # The directory being read when cancel was set is finished
        assert len(result.records) == 10

    def test_invalid_progress_interval(self, guard: PathGuard) -> None:
        """progress_interval must be positive."""
        with pytest.raises(ValueError, match="progress_interval"):
            Scanner(guard, progress_interval=0)


class TestScannerSymlinks:
    """Tests for symlink handling."""

    def test_symlink_cycle_terminates(self, scanner: Scanner, workdir: Path) -> None:
        """A link back to an ancestor is visited only once."""
        (workdir / "sub").mkdir()
        (workdir / "sub" / "a.txt").write_bytes(b"1")
        (workdir / "sub" / "loop").symlink_to(workdir, target_is_directory=True)

        result = scanner.scan(workdir)

        assert [Path(r.path).name for r in result.records] == ["a.txt"]

    def test_symlinked_files_skipped(self, scanner: Scanner, workdir: Path) -> None:
        """File symlinks are not collected."""
        (workdir / "real.txt").write_bytes(b"1")
        (workdir / "link.txt").symlink_to(workdir / "real.txt")

        result = scanner.scan(workdir)

        assert [Path(r.path).name for r in result.records] == ["real.txt"]

    def test_symlinked_directory_not_followed_when_disabled(
        self, guard: PathGuard, workdir: Path, tmp_path: Path
    ) -> None:
        """follow_symlinks=False leaves linked directories alone."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "b.txt").write_bytes(b"1")
        (workdir / "linked").symlink_to(outside, target_is_directory=True)

        followed = Scanner(guard).scan(workdir)
        not_followed = Scanner(guard, follow_symlinks=False).scan(workdir)

        assert len(followed.records) == 1
        assert not_followed.records == ()

    def test_symlink_into_forbidden_tree_skipped(
        self, scanner: Scanner, workdir: Path, graveyard_dir: Path
    ) -> None:
        """A link whose target is forbidden is not descended into."""
        graveyard_dir.mkdir()
        (graveyard_dir / "x.bin").write_bytes(b"1")
        (workdir / "sneaky").symlink_to(graveyard_dir, target_is_directory=True)

        result = scanner.scan(workdir)

        assert result.records == ()
