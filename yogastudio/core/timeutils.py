"""Studio-local calendar helpers.

Datetimes are persisted in UTC. Naive values coming back from the database
are UTC; naive values coming from clients are wall-clock times in the studio
timezone.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from ..config import get_settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def studio_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=studio_timezone())
    return value.astimezone(timezone.utc)


def local_day(value: datetime) -> date:
    return as_utc(value).astimezone(studio_timezone()).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the UTC half-open interval covering one studio calendar day."""

    tz = studio_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def range_bounds(start_day: date, end_day: date) -> tuple[datetime, datetime]:
    """UTC bounds for ``[start_day 00:00, end_day 23:59:59.999999]``."""

    start, _ = day_bounds(start_day)
    _, end = day_bounds(end_day)
    return start, end
