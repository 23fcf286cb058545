"""
Timezone utilities for reporting boundaries ("today", "this week") in the
site's local timezone while shift timestamps stay in UTC.
"""

from datetime import date, datetime
from datetime import time as datetime_time
from datetime import timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def from_utc_to_local(utc_dt: datetime, tz: str) -> datetime:
    """
    Convert a UTC datetime to local time in the given IANA timezone.
    Naive input is treated as UTC.
    """
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)
    return utc_dt.astimezone(ZoneInfo(tz))


def local_start_of_day(local_date: date, tz: str) -> datetime:
    """
    Midnight of ``local_date`` in ``tz``, returned in UTC.
    """
    local_start = datetime.combine(local_date, datetime_time.min, tzinfo=ZoneInfo(tz))
    return local_start.astimezone(timezone.utc)


def day_and_week_start(utc_ref: datetime, tz: str) -> Tuple[datetime, datetime]:
    """
    UTC instants for the start of the local day and the local week (Monday)
    containing ``utc_ref``.
    """
    local_date = from_utc_to_local(utc_ref, tz).date()
    week_start_date = local_date - timedelta(days=local_date.weekday())
    return local_start_of_day(local_date, tz), local_start_of_day(week_start_date, tz)


def validate_timezone(tz: str) -> bool:
    try:
        ZoneInfo(tz)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False
