"""Unit tests for graveyard log entry models.

Tests for LogEntry serialization, validation and LogFilter matching.
"""

import json
from datetime import UTC, datetime

import pytest
from gravekeeper.models.log_entry import LogAction, LogEntry, LogFilter, create_log_entry
from gravekeeper.models.record import Tag


def _entry(
    action: LogAction = LogAction.BANISH, timestamp: str = "2026-03-01T12:00:00+00:00"
) -> LogEntry:
    return LogEntry(
        timestamp=timestamp,
        action=action,
        file_path="/data/a.iso",
        original_path="/data/a.iso",
        graveyard_path="/gy/data/a.iso",
        classifications=(Tag.DEMON, Tag.GHOST),
        file_size=1024,
    )


class TestLogEntry:
    """Tests for LogEntry."""

    def test_json_line_roundtrip(self) -> None:
        """An entry survives to_json_line/from_json_line unchanged."""
        entry = _entry()

        restored = LogEntry.from_json_line(entry.to_json_line())

        assert restored == entry

    def test_to_dict_omits_unset_fields(self) -> None:
        """Optional fields that are None are left out."""
        entry = LogEntry(
            timestamp="2026-03-01T12:00:00+00:00",
            action=LogAction.RESURRECT,
            file_path="/data/keep.txt",
        )

        assert entry.to_dict() == {
            "timestamp": "2026-03-01T12:00:00+00:00",
            "action": "resurrect",
            "file_path": "/data/keep.txt",
        }

    def test_banish_requires_graveyard_path(self) -> None:
        """Banish and Restore entries must name the graveyard path."""
        with pytest.raises(ValueError, match="graveyard path"):
            LogEntry(
                timestamp="2026-03-01T12:00:00+00:00",
                action=LogAction.BANISH,
                file_path="/data/a.iso",
            )

    def test_empty_timestamp_rejected(self) -> None:
        """An empty timestamp raises ValueError."""
        with pytest.raises(ValueError, match="Timestamp"):
            _entry(timestamp="")

    def test_from_json_line_rejects_non_object(self) -> None:
        """A JSON value that is not an object is invalid."""
        with pytest.raises(ValueError, match="not a JSON object"):
            LogEntry.from_json_line(json.dumps(["banish"]))

    def test_from_dict_unknown_action(self) -> None:
        """Unknown action values raise ValueError."""
        data = _entry().to_dict()
        data["action"] = "delete"

        with pytest.raises(ValueError):
            LogEntry.from_dict(data)

    def test_timestamp_dt_handles_z_suffix(self) -> None:
        """A trailing Z is read as UTC."""
        entry = _entry(timestamp="2026-03-01T12:00:00Z")

        assert entry.timestamp_dt == datetime(2026, 3, 1, 12, tzinfo=UTC)


class TestCreateLogEntry:
    """Tests for create_log_entry factory."""

    def test_stamps_current_time(self) -> None:
        """The entry carries an aware timestamp close to now."""
        before = datetime.now(UTC)
        entry = create_log_entry(LogAction.RESURRECT, "/data/keep.txt")

        assert before <= entry.timestamp_dt <= datetime.now(UTC)

    def test_tags_stored_in_stable_order(self) -> None:
        """Tags are sorted so identical sets serialize identically."""
        entry = create_log_entry(
            LogAction.BANISH,
            "/data/a.iso",
            graveyard_path="/gy/a.iso",
            classifications=frozenset({Tag.ZOMBIE, Tag.DEMON}),
        )

        assert entry.classifications == (Tag.DEMON, Tag.ZOMBIE)


class TestLogFilter:
    """Tests for LogFilter."""

    def test_empty_filter_matches_everything(self) -> None:
        """No criteria means every entry matches."""
        assert LogFilter().matches(_entry()) is True

    def test_action_filter(self) -> None:
        """Only entries with the requested action match."""
        log_filter = LogFilter(action=LogAction.RESTORE)

        assert log_filter.matches(_entry(LogAction.RESTORE)) is True
        assert log_filter.matches(_entry(LogAction.BANISH)) is False

    def test_date_bounds_inclusive(self) -> None:
        """Entries exactly on either bound match."""
        when = datetime(2026, 3, 1, 12, tzinfo=UTC)
        log_filter = LogFilter(start_date=when, end_date=when)

        assert log_filter.matches(_entry()) is True

    def test_naive_bounds_treated_as_utc(self) -> None:
        """Naive datetimes are compared as UTC."""
        log_filter = LogFilter(start_date=datetime(2026, 3, 2))

        assert log_filter.matches(_entry()) is False
