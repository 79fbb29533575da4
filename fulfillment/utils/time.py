"""Clock and weekly-calendar helpers used by opening-hours checks."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from fulfillment.core.config import settings

DAYS_PER_WEEK: int = 7
WEEKDAY_NAMES: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are assumed to be UTC.

    SQLite drops tzinfo on read, so timestamps loaded from it come back naive.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(now: datetime) -> datetime:
    """Convert an instant into branch wall-clock time.

    Aware datetimes are converted into the configured business timezone,
    naive datetimes are already wall-clock values and are returned unchanged.
    """
    if now.tzinfo is None:
        return now
    return now.astimezone(ZoneInfo(settings.business_timezone)).replace(tzinfo=None)


def local_now() -> datetime:
    return to_local(utc_now())


def wall_clock(now: datetime) -> time:
    """Return the HH:MM wall-clock time of a local datetime."""
    return now.time().replace(second=0, microsecond=0)


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def weekday_after(weekday: int, day_offset: int) -> int:
    """Weekday index (0 = Monday) reached after ``day_offset`` days."""
    return (weekday + day_offset) % DAYS_PER_WEEK


def minutes_since(start: datetime, now: datetime) -> float:
    return (as_utc(now) - as_utc(start)) / timedelta(minutes=1)
