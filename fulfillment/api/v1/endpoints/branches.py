"""Branch endpoints: business hours, open status and the branch inbox."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fulfillment.core.security import get_current_actor
from fulfillment.db.session import get_db
from fulfillment.models import Branch, BranchNotification
from fulfillment.schemas.branch import (
    BranchCreate,
    BranchOpenResponse,
    BranchResponse,
    BusinessHoursUpdate,
    FleetStatusResponse,
    NextOpeningResponse,
    NotificationResponse,
)
from fulfillment.services import fulfillment_service
from fulfillment.services.branch_service import create_branch, save_business_hours
from fulfillment.services.notification_service import list_branch_notifications, mark_notification_read
from fulfillment.services.opening_hours import DayHours, describe_next_opening
from fulfillment.services.repository import SqlAlchemyRepository
from fulfillment.services.security_guards import Actor, ensure_branch_staff_or_admin

router: APIRouter = APIRouter()


@router.post("", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
def add_branch(payload: BranchCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> Branch:
    return create_branch(db, actor, name=payload.name, address=payload.address, phone=payload.phone)


@router.get("", response_model=list[BranchResponse])
def list_branches(db: Session = Depends(get_db)) -> list[Branch]:
    return SqlAlchemyRepository(db).list_branches()


@router.get("/status", response_model=FleetStatusResponse)
def fleet_status(db: Session = Depends(get_db)) -> FleetStatusResponse:
    """Whether anyone is taking orders right now, and when ordering resumes if not."""
    repo = SqlAlchemyRepository(db)
    open_now = fulfillment_service.open_branches(repo)
    is_open = bool(open_now)
    opening = None if is_open else fulfillment_service.get_next_open_time(repo)
    next_opening = None
    if opening is not None:
        next_opening = NextOpeningResponse(
            day_offset=opening.day_offset,
            weekday=opening.weekday,
            open_time=opening.open_time,
            branch_id=opening.branch_id,
            label=describe_next_opening(opening),
        )
    message = "Open now" if is_open else describe_next_opening(opening)
    return FleetStatusResponse(
        is_any_open=is_open,
        open_branch_ids=[branch.id for branch in open_now],
        next_opening=next_opening,
        message=message,
    )


@router.get("/{branch_id}/open", response_model=BranchOpenResponse)
def branch_open(branch_id: int, db: Session = Depends(get_db)) -> BranchOpenResponse:
    return BranchOpenResponse(
        branch_id=branch_id,
        is_open=fulfillment_service.is_branch_open(SqlAlchemyRepository(db), branch_id),
    )


@router.put("/{branch_id}/hours", response_model=BranchResponse)
def update_hours(
    branch_id: int,
    payload: BusinessHoursUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Branch:
    days = [
        DayHours(
            day_of_week=day.day_of_week,
            is_open=day.is_open,
            open_time=day.open_time,
            close_time=day.close_time,
        )
        for day in payload.days
    ]
    return save_business_hours(db, actor, branch_id, days)


@router.get("/{branch_id}/notifications", response_model=list[NotificationResponse])
def notifications(
    branch_id: int,
    unread_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[BranchNotification]:
    ensure_branch_staff_or_admin(actor, branch_id)
    return list_branch_notifications(db, branch_id, unread_only=unread_only)


@router.post("/{branch_id}/notifications/{notification_id}/read", response_model=NotificationResponse)
def read_notification(
    branch_id: int,
    notification_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> BranchNotification:
    ensure_branch_staff_or_admin(actor, branch_id)
    return mark_notification_read(db, branch_id, notification_id)
