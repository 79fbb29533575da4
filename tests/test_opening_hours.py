"""Opening-hours evaluation tests.

2026-10-19 is a Monday (weekday 0).
"""

from datetime import datetime, time, timezone

import pytest

from fulfillment.core.config import settings
from fulfillment.models import Branch, BusinessHours
from fulfillment.services import opening_hours
from fulfillment.services.errors import InvalidBusinessHours
from fulfillment.services.opening_hours import DayHours, NextOpening

MONDAY = 0
TUESDAY = 1
SUNDAY = 6


def _branch(branch_id: int, hours: dict[int, tuple[str, str] | None] | None = None, *, is_active: bool = True) -> Branch:
    """Build a branch; ``None`` for a weekday marks it closed."""
    rows: list[BusinessHours] = []
    for day, window in (hours or {}).items():
        if window is None:
            rows.append(BusinessHours(day_of_week=day, is_open=False, open_time=time(0, 0), close_time=time(0, 0)))
        else:
            rows.append(
                BusinessHours(
                    day_of_week=day,
                    is_open=True,
                    open_time=time.fromisoformat(window[0]),
                    close_time=time.fromisoformat(window[1]),
                )
            )
    return Branch(id=branch_id, name=f"Branch {branch_id}", is_active=is_active, business_hours=rows)


def _week(window: tuple[str, str] | None) -> dict[int, tuple[str, str] | None]:
    return {day: window for day in range(7)}


@pytest.mark.parametrize(
    ("clock", "expected"),
    [("07:59", False), ("08:00", True), ("12:30", True), ("17:59", True), ("18:00", False), ("23:30", False)],
)
def test_default_window_is_half_open(clock: str, expected: bool) -> None:
    branch = _branch(1)
    hour, minute = (int(part) for part in clock.split(":"))
    assert opening_hours.is_branch_open(branch, datetime(2026, 10, 19, hour, minute)) is expected


def test_seconds_are_ignored_at_close() -> None:
    branch = _branch(1, _week(("08:00", "18:00")))
    assert opening_hours.is_branch_open(branch, datetime(2026, 10, 19, 17, 59, 59))


def test_closed_weekday_is_closed_all_day() -> None:
    hours = _week(("08:00", "18:00"))
    hours[SUNDAY] = None
    branch = _branch(1, hours)

    assert not opening_hours.is_branch_open(branch, datetime(2026, 10, 25, 12, 0))
    assert opening_hours.is_branch_open(branch, datetime(2026, 10, 24, 12, 0))


def test_missing_weekday_row_counts_as_closed() -> None:
    branch = _branch(1, {MONDAY: ("08:00", "18:00")})
    assert not opening_hours.is_branch_open(branch, datetime(2026, 10, 20, 12, 0))


def test_inactive_branch_is_never_open() -> None:
    branch = _branch(1, is_active=False)
    assert not opening_hours.is_branch_open(branch, datetime(2026, 10, 19, 12, 0))
    assert opening_hours.next_opening(branch, datetime(2026, 10, 19, 12, 0)) is None


def test_aware_instant_uses_business_timezone(monkeypatch) -> None:
    monkeypatch.setattr(settings, "business_timezone", "Europe/Warsaw")
    branch = _branch(1, _week(("08:00", "18:00")))

    # 06:30 UTC is 08:30 in Warsaw during summer time.
    assert opening_hours.is_branch_open(branch, datetime(2026, 10, 19, 6, 30, tzinfo=timezone.utc))
    assert not opening_hours.is_branch_open(branch, datetime(2026, 10, 19, 16, 30, tzinfo=timezone.utc))


def test_next_opening_today_while_still_open() -> None:
    branch = _branch(1, _week(("08:00", "18:00")))
    opening = opening_hours.next_opening(branch, datetime(2026, 10, 19, 12, 0))
    assert opening == NextOpening(day_offset=0, open_time=time(8, 0), weekday=MONDAY)


def test_next_opening_after_close_is_tomorrow() -> None:
    branch = _branch(1, _week(("08:00", "18:00")))
    opening = opening_hours.next_opening(branch, datetime(2026, 10, 19, 18, 0))
    assert opening is not None
    assert opening.day_offset == 1
    assert opening.weekday == TUESDAY
    assert opening.branch_id == 1
    assert opening_hours.describe_next_opening(opening) == "Tomorrow at 08:00"


def test_next_opening_skips_closed_days() -> None:
    hours = _week(None)
    hours[MONDAY] = ("09:00", "17:00")
    branch = _branch(1, hours)

    opening = opening_hours.next_opening(branch, datetime(2026, 10, 23, 20, 0))

    assert opening is not None
    assert opening.day_offset == 3
    assert opening.weekday == MONDAY
    assert opening_hours.describe_next_opening(opening) == "Monday at 09:00"


def test_same_weekday_next_week_is_found() -> None:
    hours = _week(None)
    hours[MONDAY] = ("08:00", "10:00")
    branch = _branch(1, hours)

    opening = opening_hours.next_opening(branch, datetime(2026, 10, 19, 11, 0))

    assert opening is not None
    assert opening.day_offset == 7


def test_later_opening_today_beats_earlier_opening_tomorrow() -> None:
    late_today = _branch(1, {MONDAY: ("14:00", "22:00")})
    early_tomorrow = _branch(2, {MONDAY: None, TUESDAY: ("08:00", "18:00")})

    opening = opening_hours.get_next_open_time([early_tomorrow, late_today], datetime(2026, 10, 19, 10, 0))

    assert opening is not None
    assert opening.day_offset == 0
    assert opening.open_time == time(14, 0)
    assert opening.branch_id == 1
    assert opening_hours.describe_next_opening(opening) == "Today at 14:00"


def test_earliest_time_wins_on_same_day() -> None:
    first = _branch(1, {TUESDAY: ("10:00", "18:00")})
    second = _branch(2, {TUESDAY: ("07:30", "12:00")})

    opening = opening_hours.get_next_open_time([first, second], datetime(2026, 10, 19, 20, 0))

    assert opening is not None
    assert opening.open_time == time(7, 30)
    assert opening.branch_id == 2


def test_no_upcoming_opening_returns_none() -> None:
    branches = [_branch(1, _week(None)), _branch(2, is_active=False)]
    now = datetime(2026, 10, 19, 12, 0)

    assert opening_hours.get_next_open_time(branches, now) is None
    assert opening_hours.get_next_open_time([], now) is None
    assert opening_hours.describe_next_opening(None) == "Closed until further notice"


def test_is_any_branch_open() -> None:
    closed = _branch(1, _week(None))
    evening = _branch(2, _week(("17:00", "23:00")))

    assert not opening_hours.is_any_branch_open([closed, evening], datetime(2026, 10, 19, 12, 0))
    assert opening_hours.is_any_branch_open([closed, evening], datetime(2026, 10, 19, 18, 0))
    assert opening_hours.open_branches([closed, evening], datetime(2026, 10, 19, 18, 0)) == [evening]
    assert not opening_hours.is_any_branch_open([], datetime(2026, 10, 19, 18, 0))


def test_validate_day_hours_rejects_overnight_windows() -> None:
    with pytest.raises(InvalidBusinessHours):
        opening_hours.validate_day_hours(DayHours(MONDAY, True, time(22, 0), time(2, 0)))
    with pytest.raises(InvalidBusinessHours):
        opening_hours.validate_day_hours(DayHours(7, True, time(8, 0), time(18, 0)))
    opening_hours.validate_day_hours(DayHours(SUNDAY, False, time(0, 0), time(0, 0)))
