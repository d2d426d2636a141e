"""
Timezone-aware datetime helpers for the buyer CRM.

Buyer timestamps are stored in UTC. SQLite hands them back naive, so every
comparison (for example the optimistic concurrency check on updates) goes
through ensure_utc first.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current UTC time as a timezone-aware datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Return ``dt`` as an aware UTC datetime.

    Naive values are assumed to already be UTC; aware values in another
    zone are converted.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    if dt.tzinfo != timezone.utc:
        return dt.astimezone(timezone.utc)
    return dt


def format_utc_iso(dt: Optional[datetime] = None) -> str:
    """
    Format a datetime as ISO 8601 in UTC (defaults to now).

    Example:
        >>> format_utc_iso(datetime(2025, 1, 1, 12, 0))
        '2025-01-01T12:00:00+00:00'
    """
    utc_dt = ensure_utc(dt) if dt else utc_now()
    return utc_dt.isoformat()


def parse_utc_iso(iso_string: str) -> datetime:
    """
    Parse an ISO 8601 string (a trailing 'Z' is accepted) to aware UTC.

    Raises:
        ValueError: If the string is not a valid ISO 8601 datetime
    """
    if iso_string.endswith('Z'):
        iso_string = iso_string[:-1] + '+00:00'
    return ensure_utc(datetime.fromisoformat(iso_string))
