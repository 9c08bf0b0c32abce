"""UTC helpers. All timestamps are stored and compared in UTC."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_day_window(day: date) -> Tuple[datetime, datetime]:
    """Return the half-open UTC window ``[day 00:00Z, day+1 00:00Z)``."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)
