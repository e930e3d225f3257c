"""Unit tests for graveyard reconciliation."""

from pathlib import Path

from gravekeeper.custody.quarantine import QuarantineStore
from gravekeeper.custody.reconcile import list_graveyard_files, reconcile
from gravekeeper.storage.graveyard_log import GraveyardLog


class TestReconcile:
    """Tests for reconcile."""

    def test_clean_graveyard(
        self,
        store: QuarantineStore,
        graveyard_log: GraveyardLog,
        graveyard_dir: Path,
        workdir: Path,
    ) -> None:
        """Files banished through the store agree with the log."""
        for name in ("a.txt", "b.txt"):
            (workdir / name).write_bytes(b"x")
            store.banish(str(workdir / name))

        report = reconcile(graveyard_dir, graveyard_log)

        assert report.is_clean is True
        assert report.orphan_count == 0

    def test_unlogged_file_reported(
        self, graveyard_log: GraveyardLog, graveyard_dir: Path
    ) -> None:
        """A file in the graveyard with no Banish entry is an orphan."""
        stray = graveyard_dir / "stray.bin"
        stray.parent.mkdir(parents=True)
        stray.write_bytes(b"x")

        report = reconcile(graveyard_dir, graveyard_log)

        assert report.unlogged_files == (str(stray),)
        assert stray.exists()

    def test_missing_file_reported(
        self,
        store: QuarantineStore,
        graveyard_log: GraveyardLog,
        graveyard_dir: Path,
        workdir: Path,
    ) -> None:
        """A Banish entry whose file is gone is an orphan."""
        (workdir / "a.txt").write_bytes(b"x")
        result = store.banish(str(workdir / "a.txt"))
        Path(result.graveyard_path).unlink()

        report = reconcile(graveyard_dir, graveyard_log)

        assert [e.graveyard_path for e in report.missing_files] == [result.graveyard_path]
        assert report.unlogged_files == ()

    def test_restored_files_not_reported(
        self,
        store: QuarantineStore,
        graveyard_log: GraveyardLog,
        graveyard_dir: Path,
        workdir: Path,
    ) -> None:
        """A banish followed by a restore leaves nothing to reconcile."""
        source = workdir / "a.txt"
        source.write_bytes(b"x")
        result = store.banish(str(source))
        store.restore(result.graveyard_path, str(source))

        assert reconcile(graveyard_dir, graveyard_log).is_clean is True

    def test_missing_graveyard_dir(self, tmp_path: Path) -> None:
        """A graveyard that does not exist yet has no files."""
        assert list_graveyard_files(tmp_path / "nope") == []
