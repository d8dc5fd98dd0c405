"""Timezone-aware datetime helpers.

Columns are declared ``DateTime(timezone=True)``, but some drivers hand
back naive values; everything that compares timestamps goes through
``ensure_utc`` first.
"""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime object is timezone-aware and in UTC.

    A naive datetime is assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def hours_from(start: datetime, hours: int) -> datetime:
    """Return ``start`` shifted forward by a whole number of hours."""
    return ensure_utc(start) + timedelta(hours=hours)


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """True when ``expires_at`` lies strictly in the past; ``None`` never expires."""
    if expires_at is None:
        return False
    return (now or utcnow()) > ensure_utc(expires_at)


__all__ = [
    "ensure_utc",
    "hours_from",
    "is_expired",
    "utcnow",
]
