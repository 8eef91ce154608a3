"""
UTC timestamp utilities.

Jobs and entries persist timestamps as fixed-width ISO 8601 strings so
that string comparison in SQL (``scheduled_at <= ?``) matches
chronological order.  The job descriptor wire format uses epoch
milliseconds.

Tags:
    timestamps, utc, datetime, content-spine
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to a fixed-width, sortable ISO 8601 UTC string."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat(timespec="microseconds")


def from_iso8601(s: str | None) -> datetime | None:
    """Parse ISO 8601 string to an aware UTC datetime."""
    if s is None:
        return None
    return ensure_utc(datetime.fromisoformat(s))


def to_epoch_ms(dt: datetime) -> int:
    return (ensure_utc(dt) - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(ms: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=ms)


__all__ = [
    "utc_now",
    "ensure_utc",
    "to_iso8601",
    "from_iso8601",
    "to_epoch_ms",
    "from_epoch_ms",
]
