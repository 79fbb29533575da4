"""Branch helpers for business-hours management."""

from __future__ import annotations

from sqlalchemy.orm import Session

from fulfillment.models import Branch, BusinessHours
from fulfillment.services.errors import InvalidBusinessHours
from fulfillment.services.opening_hours import DayHours, validate_day_hours
from fulfillment.services.repository import SqlAlchemyRepository
from fulfillment.services.security_guards import Actor, ensure_admin, ensure_branch_staff_or_admin


def create_branch(db: Session, actor: Actor, *, name: str, address: str | None = None, phone: str | None = None) -> Branch:
    ensure_admin(actor)
    branch = Branch(name=name, address=address, phone=phone, is_active=True)
    db.add(branch)
    db.commit()
    db.refresh(branch)
    return branch


def save_business_hours(db: Session, actor: Actor, branch_id: int, days: list[DayHours]) -> Branch:
    """Replace the weekly schedule of a branch after validating every day."""
    ensure_branch_staff_or_admin(actor, branch_id)
    seen: set[int] = set()
    for day in days:
        validate_day_hours(day)
        if day.day_of_week in seen:
            raise InvalidBusinessHours(f"day_of_week {day.day_of_week} listed twice")
        seen.add(day.day_of_week)

    branch = SqlAlchemyRepository(db).get_branch(branch_id)
    branch.business_hours.clear()
    db.flush()
    for day in sorted(days, key=lambda item: item.day_of_week):
        branch.business_hours.append(
            BusinessHours(
                day_of_week=day.day_of_week,
                is_open=day.is_open,
                open_time=day.open_time,
                close_time=day.close_time,
            )
        )
    db.commit()
    db.refresh(branch)
    return branch
