"""
Timezone helpers

All timestamps are handled as aware UTC datetimes. Values read back from
databases without timezone support (SQLite) come back naive and are
normalised with ensure_utc before comparison.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    value = ensure_utc(value)
    return value.isoformat() if value else None


def relative_time(value: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Human readable age of a timestamp

    "Just now" under a minute, then minutes, hours and days up to a week,
    after which the calendar date is returned.
    """
    value = ensure_utc(value)
    if value is None:
        return "Never"
    now = ensure_utc(now) or utcnow()
    seconds = max((now - value).total_seconds(), 0)
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if hours < 1:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    if days < 1:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    if days < 7:
        return f"{days} day{'s' if days != 1 else ''} ago"
    return value.strftime("%Y-%m-%d")
