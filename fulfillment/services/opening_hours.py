"""Branch opening-hours evaluation.

Schedules are weekly, one entry per weekday (0 = Monday), with a half-open
``[open_time, close_time)`` window in local wall-clock time. Windows that
cross midnight are not supported and are refused when saved.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, time

from fulfillment.core.config import settings
from fulfillment.models import Branch
from fulfillment.services.errors import InvalidBusinessHours
from fulfillment.utils.time import DAYS_PER_WEEK, WEEKDAY_NAMES, format_hhmm, to_local, wall_clock, weekday_after


@dataclass(frozen=True)
class DayHours:
    day_of_week: int
    is_open: bool
    open_time: time
    close_time: time

    @property
    def has_window(self) -> bool:
        return self.is_open and self.open_time < self.close_time


@dataclass(frozen=True, order=True)
class NextOpening:
    """Earliest upcoming opening, ordered by day offset then clock time."""

    day_offset: int
    open_time: time
    weekday: int = field(compare=False)
    branch_id: int | None = field(default=None, compare=False)


def default_week() -> dict[int, DayHours]:
    return {
        day: DayHours(day, True, settings.default_open_time, settings.default_close_time)
        for day in range(DAYS_PER_WEEK)
    }


def validate_day_hours(day: DayHours) -> None:
    if not 0 <= day.day_of_week < DAYS_PER_WEEK:
        raise InvalidBusinessHours(f"day_of_week must be between 0 and 6, got {day.day_of_week}")
    if day.is_open and day.close_time <= day.open_time:
        raise InvalidBusinessHours(
            f"{WEEKDAY_NAMES[day.day_of_week]}: close time {format_hhmm(day.close_time)} must be later "
            f"than open time {format_hhmm(day.open_time)} on the same day"
        )


def weekly_schedule(branch: Branch) -> dict[int, DayHours]:
    """Return the branch schedule, falling back to configured defaults when none is stored."""
    if not branch.business_hours:
        return default_week()
    return {
        row.day_of_week: DayHours(row.day_of_week, row.is_open, row.open_time, row.close_time)
        for row in branch.business_hours
    }


def is_open_at(schedule: Mapping[int, DayHours], now: datetime) -> bool:
    local = to_local(now)
    today = schedule.get(local.weekday())
    if today is None or not today.is_open:
        return False
    return today.open_time <= wall_clock(local) < today.close_time


def is_branch_open(branch: Branch, now: datetime) -> bool:
    if not branch.is_active:
        return False
    return is_open_at(weekly_schedule(branch), now)


def next_opening(branch: Branch, now: datetime) -> NextOpening | None:
    """Scan today and the following seven days for the first open day.

    Today only counts while its closing time has not passed yet.
    """
    if not branch.is_active:
        return None
    schedule = weekly_schedule(branch)
    local = to_local(now)
    clock = wall_clock(local)
    for day_offset in range(DAYS_PER_WEEK + 1):
        weekday = weekday_after(local.weekday(), day_offset)
        day = schedule.get(weekday)
        if day is None or not day.has_window:
            continue
        if day_offset == 0 and clock >= day.close_time:
            continue
        return NextOpening(day_offset=day_offset, open_time=day.open_time, weekday=weekday, branch_id=branch.id)
    return None


def get_next_open_time(branches: Iterable[Branch], now: datetime) -> NextOpening | None:
    """Soonest opening across branches; ``None`` means no upcoming opening."""
    openings = [opening for branch in branches if (opening := next_opening(branch, now)) is not None]
    if not openings:
        return None
    return min(openings)


def open_branches(branches: Iterable[Branch], now: datetime) -> list[Branch]:
    return [branch for branch in branches if is_branch_open(branch, now)]


def is_any_branch_open(branches: Iterable[Branch], now: datetime) -> bool:
    return any(is_branch_open(branch, now) for branch in branches)


def describe_next_opening(opening: NextOpening | None) -> str:
    if opening is None:
        return "Closed until further notice"
    if opening.day_offset == 0:
        return f"Today at {format_hhmm(opening.open_time)}"
    if opening.day_offset == 1:
        return f"Tomorrow at {format_hhmm(opening.open_time)}"
    return f"{WEEKDAY_NAMES[opening.weekday]} at {format_hhmm(opening.open_time)}"
