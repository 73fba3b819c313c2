# src/campus_vote/db/time.py
"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from backends without timezones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def floor_to_granularity(value: datetime, seconds: int) -> datetime:
    """Floor ``value`` to a multiple of ``seconds`` since the epoch."""
    if seconds <= 0:
        return value
    value = ensure_utc(value)
    epoch = int(value.timestamp())
    return datetime.fromtimestamp(epoch - epoch % seconds, UTC)
