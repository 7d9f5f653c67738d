# backend/app/utils/date_utils.py
"""
Date and time helpers shared by the stores and the valuation engine.

Storage convention: every persisted timestamp is a naive datetime in UTC.
"Today" and calendar dates are always derived in a configured local zone,
never from the database session or the host clock zone.

Usage:
    from app.utils.date_utils import utc_now, local_day_start, local_date

    today_start = local_day_start(utc_now(), tz)
"""

from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Aware values are converted; naive values are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def resolve_timezone(name: str) -> tzinfo:
    """
    Resolve an IANA zone name.

    "UTC" maps to datetime.timezone.utc so no zone database is needed for it.
    """
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def local_date(value: datetime, tz: tzinfo) -> date:
    """
    Calendar date of a stored (naive UTC) timestamp in the given zone.

    Example:
        >>> local_date(datetime(2024, 1, 1, 20, 0), ZoneInfo("Asia/Kolkata"))
        date(2024, 1, 2)
    """
    return value.replace(tzinfo=timezone.utc).astimezone(tz).date()


def local_day_start(now: datetime, tz: tzinfo) -> datetime:
    """
    Local midnight of the day containing `now`, as naive UTC.

    This is the boundary between "today" ([start, now)) and
    "historical" ((-inf, start)).

    Args:
        now: Current instant (naive UTC or aware)
        tz: Zone that defines the calendar day
    """
    today = local_date(to_utc_naive(now), tz)
    midnight = datetime.combine(today, time.min, tzinfo=tz)
    return to_utc_naive(midnight)
