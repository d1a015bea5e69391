"""Datetime helpers.

All quota arithmetic is done on timezone-aware UTC datetimes. SQLite hands
back naive values for ``DateTime(timezone=True)`` columns, so anything read
from the database goes through ``as_utc`` first.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def same_utc_date(first: datetime, second: datetime) -> bool:
    """Compare UTC calendar dates (year, month, day), not a rolling window."""
    return as_utc(first).date() == as_utc(second).date()
