"""Delivery worker registration and approval."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.models import DeliveryWorker, Order, User, UserRole, WorkerStatus
from fulfillment.services.claim_arbitration import ACTIVE_ASSIGNMENT_STATUSES
from fulfillment.services.errors import NotAuthorized
from fulfillment.services.repository import SqlAlchemyRepository
from fulfillment.services.security_guards import Actor, ensure_branch_staff_or_admin

logger = logging.getLogger(__name__)


def register_worker(
    db: Session,
    *,
    user: User,
    branch_id: int,
    name: str,
    phone: str | None = None,
    vehicle_type: str | None = None,
) -> DeliveryWorker:
    """Self-registration; the worker stays ``pending`` until branch staff review it."""
    SqlAlchemyRepository(db).get_branch(branch_id)
    worker = DeliveryWorker(
        user_id=user.id,
        branch_id=branch_id,
        name=name,
        phone=phone,
        vehicle_type=vehicle_type,
        status=WorkerStatus.PENDING,
        is_active=True,
    )
    db.add(worker)
    db.commit()
    db.refresh(worker)
    logger.info("[DELIVERY] Worker %s registered for branch_id=%s", worker.id, branch_id)
    return worker


def set_worker_status(db: Session, actor: Actor, worker_id: int, status: WorkerStatus) -> DeliveryWorker:
    worker = SqlAlchemyRepository(db).get_worker(worker_id)
    ensure_branch_staff_or_admin(actor, worker.branch_id)
    worker.status = status
    db.commit()
    db.refresh(worker)
    logger.info("[DELIVERY] Worker %s set to %s by %s", worker.id, status.value, actor.identifier)
    return worker


def remove_worker(db: Session, actor: Actor, worker_id: int) -> DeliveryWorker:
    """Soft-remove: historical orders keep referencing the worker."""
    worker = SqlAlchemyRepository(db).get_worker(worker_id)
    ensure_branch_staff_or_admin(actor, worker.branch_id)
    worker.is_active = False
    db.commit()
    db.refresh(worker)
    return worker


def list_active_orders(db: Session, actor: Actor, worker_id: int) -> list[Order]:
    worker = SqlAlchemyRepository(db).get_worker(worker_id)
    if actor.role == UserRole.DELIVERY:
        if actor.worker_id != worker.id:
            raise NotAuthorized("Delivery workers can only see their own orders")
    else:
        ensure_branch_staff_or_admin(actor, worker.branch_id)
    return list(
        db.scalars(
            select(Order)
            .where(Order.delivery_id == worker.id, Order.status.in_(list(ACTIVE_ASSIGNMENT_STATUSES)))
            .order_by(Order.created_at.asc())
        ).all()
    )
