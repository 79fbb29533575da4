"""Branch inbox notifications written alongside fulfillment changes."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.models import BranchNotification
from fulfillment.services.errors import EntityNotFound
from fulfillment.services.repository import FulfillmentRepository


def notify_branch(
    repo: FulfillmentRepository,
    *,
    branch_id: int,
    notification_type: str,
    order_id: int,
    title: str,
    message: str,
    delivery_id: int | None = None,
) -> None:
    repo.add(
        BranchNotification(
            branch_id=branch_id,
            type=notification_type,
            order_id=order_id,
            delivery_id=delivery_id,
            title=title,
            message=message,
            read=False,
        )
    )


def list_branch_notifications(db: Session, branch_id: int, unread_only: bool = False) -> list[BranchNotification]:
    query = select(BranchNotification).where(BranchNotification.branch_id == branch_id)
    if unread_only:
        query = query.where(BranchNotification.read.is_(False))
    return list(db.scalars(query.order_by(BranchNotification.created_at.desc(), BranchNotification.id.desc())).all())


def mark_notification_read(db: Session, branch_id: int, notification_id: int) -> BranchNotification:
    notification = db.get(BranchNotification, notification_id)
    if notification is None or notification.branch_id != branch_id:
        raise EntityNotFound("BranchNotification", notification_id)
    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification
