"""Unit tests for the SQLite aggregation store."""

from datetime import UTC, date, datetime

import pytest

from obs_source_tracker.store import AggregationStore, DailyAggregate, SourceMetadata

DAY = date(2024, 5, 1)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 5, 1, hour, minute, tzinfo=UTC)


# =============================================================================
# Counters
# =============================================================================


class TestCounters:
    """Test per-day counters."""

    def test_increment_creates_row(self, store):
        store.increment_show(DAY, "Camera1", at=at(9))

        rows = store.read_day(DAY)
        assert len(rows) == 1
        assert rows[0].visible_count == 1
        assert rows[0].total_duration_seconds == 0
        assert rows[0].last_visible_at == at(9).isoformat()

    def test_increment_updates_existing_row(self, store):
        store.increment_show(DAY, "Camera1", at=at(9))
        store.increment_show(DAY, "Camera1", at=at(10))

        row = store.read_day(DAY)[0]
        assert row.visible_count == 2
        assert row.last_visible_at == at(10).isoformat()

    def test_add_duration_accumulates(self, store):
        store.increment_show(DAY, "Camera1", at=at(9))
        store.add_duration(DAY, "Camera1", 47)
        store.add_duration(DAY, "Camera1", 10)

        assert store.read_day(DAY)[0].total_duration_seconds == 57

    def test_add_duration_creates_row(self, store):
        """A session shown yesterday still gets a row for today."""
        store.add_duration(DAY, "Camera1", 20)

        row = store.read_day(DAY)[0]
        assert row.visible_count == 0
        assert row.total_duration_seconds == 20
        assert row.last_visible_at is None

    def test_negative_duration_rejected(self, store):
        with pytest.raises(ValueError):
            store.add_duration(DAY, "Camera1", -1)

    def test_days_are_separate(self, store):
        store.increment_show(DAY, "Camera1", at=at(9))
        store.increment_show(date(2024, 5, 2), "Camera1", at=at(9))

        assert store.read_day(DAY)[0].visible_count == 1
        assert store.read_day(date(2024, 4, 30)) == []

    def test_list_dates_newest_first(self, store):
        store.increment_show(date(2024, 5, 1), "Camera1", at=at(9))
        store.increment_show(date(2024, 5, 3), "Camera1", at=at(9))
        store.add_duration(date(2024, 5, 2), "Camera1", 5)

        assert store.list_dates() == ["2024-05-03", "2024-05-02", "2024-05-01"]


class TestReadOrder:
    """Test read_day ordering."""

    def test_recent_order(self, store):
        store.increment_show(DAY, "Camera1", at=at(9))
        store.increment_show(DAY, "Logo", at=at(11))
        store.add_duration(DAY, "Slate", 5)

        names = [row.source_name for row in store.read_day(DAY)]
        assert names == ["Logo", "Camera1", "Slate"]

    def test_count_order(self, store):
        store.increment_show(DAY, "Logo", at=at(11))
        store.increment_show(DAY, "Camera1", at=at(9))
        store.increment_show(DAY, "Camera1", at=at(10))

        names = [row.source_name for row in store.read_day(DAY, order="count")]
        assert names == ["Camera1", "Logo"]

    def test_unknown_order(self, store):
        with pytest.raises(ValueError):
            store.read_day(DAY, order="name")


# =============================================================================
# Metadata
# =============================================================================


class TestMetadata:
    """Test source metadata and its join onto counters."""

    def test_upsert_and_get(self, store):
        store.upsert_metadata(SourceMetadata(source_name="Camera1", title="Host", category="Cam"))

        metadata = store.get_metadata("Camera1")
        assert metadata.title == "Host"
        assert metadata.brand == ""

    def test_upsert_replaces(self, store):
        store.upsert_metadata(SourceMetadata(source_name="Logo", title="Old", category="Brand"))
        store.upsert_metadata(
            SourceMetadata(source_name="Logo", title="New", category="Brand", brand="Acme")
        )

        assert [m.title for m in store.list_metadata()] == ["New"]
        assert store.get_metadata("Logo").brand == "Acme"

    def test_update_missing_returns_false(self, store):
        assert store.update_metadata("Nope", "T", "C") is False

    def test_update_existing(self, store):
        store.upsert_metadata(SourceMetadata(source_name="Logo", title="Old", category="Brand"))

        assert store.update_metadata("Logo", "New", "Sponsor", "Acme") is True
        assert store.get_metadata("Logo") == SourceMetadata(
            source_name="Logo", title="New", category="Sponsor", brand="Acme"
        )

    def test_delete(self, store):
        store.upsert_metadata(SourceMetadata(source_name="Logo", title="T", category="C"))

        assert store.delete_metadata("Logo") is True
        assert store.delete_metadata("Logo") is False
        assert store.get_metadata("Logo") is None

    def test_read_day_joins_metadata(self, store):
        store.upsert_metadata(
            SourceMetadata(source_name="Camera1", title="Host", category="Cam", brand="Acme")
        )
        store.increment_show(DAY, "Camera1", at=at(9))
        store.increment_show(DAY, "Logo", at=at(8))

        rows = {row.source_name: row for row in store.read_day(DAY)}
        assert (rows["Camera1"].title, rows["Camera1"].brand) == ("Host", "Acme")
        assert rows["Logo"].title is None


# =============================================================================
# Persistence
# =============================================================================


class TestPersistence:
    """Test the on-disk database."""

    def test_reopen_keeps_counters(self, tmp_path):
        db_path = tmp_path / "nested" / "obs_tracker.db"
        store = AggregationStore(db_path)
        store.increment_show(DAY, "Camera1", at=at(9))
        store.close()

        reopened = AggregationStore(db_path)
        try:
            assert reopened.read_day(DAY)[0].visible_count == 1
        finally:
            reopened.close()


class TestDailyAggregate:
    """Test derived values."""

    def test_average_rounds_half_up(self):
        row = DailyAggregate(
            date="2024-05-01", source_name="Camera1", visible_count=2, total_duration_seconds=57
        )

        assert row.average_duration_seconds == 29

    def test_average_without_shows(self):
        row = DailyAggregate(date="2024-05-01", source_name="Camera1", total_duration_seconds=20)

        assert row.average_duration_seconds == 0
