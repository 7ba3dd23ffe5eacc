"""Local calendar-date helpers.

Streak and day-number logic compares calendar dates in the user's timezone.
Timestamps are converted here, at the boundary, and nowhere else.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from looped.core.config import settings
from looped.core.errors import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values (SQLite drops tzinfo) and normalise aware ones."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    key = name or settings.DEFAULT_TIMEZONE
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {key}")


def local_date(moment: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar date of an instant in the given timezone."""
    return as_utc(moment).astimezone(resolve_timezone(tz_name)).date()


def local_day_bounds(day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Half-open UTC interval covering one local calendar day."""
    tz = resolve_timezone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def parse_day(value: str) -> date:
    """Parse a YYYY-MM-DD string."""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
