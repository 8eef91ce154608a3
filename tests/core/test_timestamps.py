"""Tests for timestamp helpers."""

from datetime import UTC, datetime, timedelta, timezone

from content_spine.core.timestamps import (
    ensure_utc,
    from_epoch_ms,
    from_iso8601,
    to_epoch_ms,
    to_iso8601,
)


class TestEpochMillis:
    def test_known_value(self):
        dt = datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
        assert to_epoch_ms(dt) == 1_700_000_000_000
        assert from_epoch_ms(1_700_000_000_000) == dt

    def test_sub_millisecond_precision_is_truncated(self):
        dt = datetime(2024, 1, 1, 0, 0, 0, 999_999, tzinfo=UTC)
        assert to_epoch_ms(dt) % 1000 == 999


class TestIso8601:
    def test_fixed_width_and_sortable(self):
        early = datetime(2024, 1, 1, tzinfo=UTC)
        late = early + timedelta(microseconds=1)
        assert len(to_iso8601(early)) == len(to_iso8601(late))
        assert to_iso8601(early) < to_iso8601(late)

    def test_round_trip_normalizes_offsets(self):
        dt = datetime(2024, 1, 1, 12, tzinfo=timezone(timedelta(hours=2)))
        assert from_iso8601(to_iso8601(dt)) == datetime(2024, 1, 1, 10, tzinfo=UTC)

    def test_none_passes_through(self):
        assert to_iso8601(None) is None
        assert from_iso8601(None) is None

    def test_naive_is_treated_as_utc(self):
        assert ensure_utc(datetime(2024, 1, 1)).tzinfo is UTC
