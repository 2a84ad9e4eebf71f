"""Date and time utilities for free/busy calculation."""

from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Union

import pytz
from pytz.tzinfo import BaseTzInfo


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure datetime is in UTC.

    Naive datetimes are taken as UTC wall-clock time.

    Args:
        dt: Datetime to convert

    Returns:
        UTC datetime
    """
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def is_floating(dt: Union[date, datetime]) -> bool:
    """Whether a date-time is bound to no timezone (all-day dates included)."""
    if isinstance(dt, datetime):
        return dt.tzinfo is None
    return True


def localize(dt: datetime, tz: Optional[tzinfo]) -> datetime:
    """
    Attach a timezone to a naive wall-clock datetime.

    pytz zones pick the offset in effect at that wall-clock time, other
    tzinfo implementations are attached as is.

    Args:
        dt: Naive wall-clock datetime
        tz: Timezone to attach (None keeps the datetime floating)

    Returns:
        The localized datetime
    """
    if tz is None:
        return dt
    if isinstance(tz, BaseTzInfo):
        return tz.localize(dt)
    return dt.replace(tzinfo=tz)


def as_datetime(value: Union[date, datetime]) -> datetime:
    """Promote an all-day date to a naive midnight datetime."""
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def in_timezone(value: Union[date, datetime], tz_name: str) -> datetime:
    """
    Resolve a date-time to an absolute UTC instant.

    Floating values are interpreted as wall-clock time in the given timezone,
    timezone-bound values are converted as is.

    Args:
        value: Date or datetime to resolve
        tz_name: Timezone name used for floating values

    Returns:
        Timezone-aware UTC datetime
    """
    dt = as_datetime(value)
    if dt.tzinfo is not None:
        return dt.astimezone(pytz.utc)
    return pytz.timezone(tz_name).localize(dt).astimezone(pytz.utc)


def get_window(
    lookback_days: int = 0,
    lookahead_days: int = 7,
) -> tuple[datetime, datetime]:
    """
    Get a free/busy window (start, until) in UTC.

    Args:
        lookback_days: Days to look back from today
        lookahead_days: Days to look ahead from today

    Returns:
        Tuple of (start, until) in UTC, until being exclusive
    """
    now = datetime.now(pytz.utc)
    today_midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start = today_midnight - timedelta(days=lookback_days)
    until = today_midnight + timedelta(days=lookahead_days + 1)
    return start, until
