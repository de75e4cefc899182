"""
Time helpers. All timestamps are handled as timezone-aware UTC; naive values
coming from clients or from SQLite are interpreted as UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_before_lead_time(value: datetime, hours: int) -> bool:
    """True when `value` is earlier than now plus the given lead time."""
    return as_utc(value) < utcnow() + timedelta(hours=hours)
