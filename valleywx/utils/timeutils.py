"""
Local time helpers.

Observations are stored in UTC; every "day" in the service is a local
calendar day in the valley's timezone. These helpers translate between the
two. SQLite drops tzinfo on storage, so values read back from the database
are treated as UTC when they come back naive.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from valleywx.config import settings


def local_tz() -> ZoneInfo:
    """Return the configured valley timezone."""
    return ZoneInfo(settings.TIMEZONE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to aware UTC.

    Naive values are assumed to already be UTC (as read back from SQLite).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_now(now: Optional[datetime] = None) -> datetime:
    """Current time (or `now`) in the valley timezone."""
    return as_utc(now or utc_now()).astimezone(local_tz())


def local_today(now: Optional[datetime] = None) -> date:
    return local_now(now).date()


def local_instant(day: date, hour: int = 0, minute: int = 0) -> datetime:
    """
    UTC instant for a local wall-clock time on `day`.

    Args:
        day: Local calendar date
        hour: Local hour (0-23)
        minute: Local minute

    Returns:
        Aware UTC datetime
    """
    local = datetime.combine(day, time(hour, minute), tzinfo=local_tz())
    return local.astimezone(timezone.utc)


def local_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """
    UTC bounds `[start, end)` of a local calendar day.

    Uses the next day's local midnight as the end so DST transition days
    come out as 23 or 25 hours long.
    """
    return local_instant(day), local_instant(day + timedelta(days=1))


def local_window(day: date, start_hour: int, end_hour: int) -> Tuple[datetime, datetime]:
    """UTC bounds `[start, end)` for local hours on `day`."""
    return local_instant(day, start_hour), local_instant(day, end_hour)


def overnight_window(day: date, start_hour: int = 19, end_hour: int = 8) -> Tuple[datetime, datetime]:
    """
    UTC bounds of the night leading into `day`.

    Runs from `start_hour` on the previous local day to `end_hour` on `day`.
    """
    return local_instant(day - timedelta(days=1), start_hour), local_instant(day, end_hour)


def round_half_away(value: float) -> float:
    """
    Round to the nearest whole degree, halves away from zero.

    Example:
        >>> round_half_away(2.5), round_half_away(-2.5)
        (3.0, -3.0)
    """
    rounded = Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    # normalise -0.0
    return float(rounded) + 0.0
