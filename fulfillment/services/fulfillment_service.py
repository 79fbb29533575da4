"""Branch/admin orchestration of order fulfillment.

Every mutating operation loads the order through the injected repository,
runs the state machine or arbitrator against it and commits in one unit. A
concurrent write to the same order makes the commit fail with
``WriteConflict``; the whole check is then re-run on fresh data so racing
callers observe each other's writes instead of both succeeding.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from fulfillment.core.config import settings
from fulfillment.models import Branch, DeliveryWorker, Order, OrderCancellation, OrderStatus, UserRole
from fulfillment.services import claim_arbitration, opening_hours, order_status
from fulfillment.services.audit_service import log_action, order_snapshot
from fulfillment.services.claim_arbitration import ClaimOutcome
from fulfillment.services.errors import EntityNotFound, FulfillmentError, WriteConflict
from fulfillment.services.notification_service import notify_branch
from fulfillment.services.opening_hours import NextOpening
from fulfillment.services.repository import FulfillmentRepository
from fulfillment.services.security_guards import Actor
from fulfillment.utils.time import local_now, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run_atomic(repo: FulfillmentRepository, order_id: int, operation: Callable[[Order], T], *, action: str) -> T:
    attempts = max(1, settings.write_conflict_retries)
    for attempt in range(1, attempts + 1):
        order = repo.get_order(order_id)
        try:
            result = operation(order)
            repo.commit()
            return result
        except WriteConflict:
            logger.warning("[%s] Write conflict on order_id=%s (attempt %s/%s)", action, order_id, attempt, attempts)
            if attempt == attempts:
                raise
        except (FulfillmentError, EntityNotFound) as exc:
            repo.rollback()
            logger.info("[%s] Refused for order_id=%s: %s", action, order_id, exc)
            raise
    raise WriteConflict(f"Order {order_id} kept changing concurrently")


def _worker_actor(worker: DeliveryWorker) -> Actor:
    return Actor(
        role=UserRole.DELIVERY,
        user_id=worker.user_id,
        branch_id=worker.branch_id,
        worker_id=worker.id,
        identifier=worker.name,
    )


def advance_order(repo: FulfillmentRepository, order_id: int, target_status: OrderStatus | str, actor: Actor) -> Order:
    def _operation(order: Order) -> Order:
        before = order_snapshot(order)
        order_status.advance(order, target_status, actor)
        log_action(
            repo,
            actor=actor,
            action_type="order_status",
            order_id=order.id,
            before_snapshot=before,
            after_snapshot=order_snapshot(order),
        )
        if order.status == OrderStatus.REJECTED and actor.role == UserRole.ADMIN:
            notify_branch(
                repo,
                branch_id=order.branch_id,
                notification_type="order_rejected",
                order_id=order.id,
                title="Order rejected",
                message=f"Order {order.order_number} was rejected by an administrator.",
            )
        return order

    order = _run_atomic(repo, order_id, _operation, action="STATUS")
    logger.info("[STATUS] order=%s -> %s by %s", order.order_number, OrderStatus(order.status).value, actor.identifier)
    return order


def approve_payment(repo: FulfillmentRepository, order_id: int, actor: Actor, now: datetime | None = None) -> Order:
    approved_at = now or utc_now()

    def _operation(order: Order) -> Order:
        before = order_snapshot(order)
        was_approved = order.admin_approved
        order_status.approve_payment(order, actor, approved_at)
        if not was_approved:
            log_action(
                repo,
                actor=actor,
                action_type="payment_approved",
                order_id=order.id,
                before_snapshot=before,
                after_snapshot=order_snapshot(order),
            )
        return order

    order = _run_atomic(repo, order_id, _operation, action="PAYMENT")
    logger.info("[PAYMENT] order=%s approved by %s", order.order_number, actor.identifier)
    return order


def claim_order(repo: FulfillmentRepository, order_id: int, worker_id: int) -> tuple[Order, ClaimOutcome]:
    """Direct claim for an idle worker, approval request for a busy one."""

    def _operation(order: Order) -> tuple[Order, ClaimOutcome]:
        worker = repo.get_worker(worker_id)
        active = repo.count_active_assignments(worker.id, exclude_order_id=order.id)
        before = order_snapshot(order)
        outcome = claim_arbitration.claim(order, worker, active)
        if outcome == ClaimOutcome.REQUESTED:
            notify_branch(
                repo,
                branch_id=order.branch_id,
                notification_type="order_claim_request",
                order_id=order.id,
                delivery_id=worker.id,
                title="Additional order request",
                message=(
                    f"{worker.name} asks to take order {order.order_number}. "
                    f"They already have {active} active order(s)."
                ),
            )
        log_action(
            repo,
            actor=_worker_actor(worker),
            action_type=f"claim_{outcome.value}",
            order_id=order.id,
            before_snapshot=before,
            after_snapshot=order_snapshot(order),
        )
        return order, outcome

    order, outcome = _run_atomic(repo, order_id, _operation, action="CLAIM")
    logger.info("[CLAIM] order=%s worker=%s outcome=%s", order.order_number, worker_id, outcome.value)
    return order, outcome


def resolve_claim_request(repo: FulfillmentRepository, order_id: int, approve: bool, actor: Actor) -> Order:
    def _operation(order: Order) -> Order:
        before = order_snapshot(order)
        claim_arbitration.resolve_request(order, approve, actor)
        log_action(
            repo,
            actor=actor,
            action_type="claim_request_approved" if approve else "claim_request_rejected",
            order_id=order.id,
            before_snapshot=before,
            after_snapshot=order_snapshot(order),
        )
        return order

    order = _run_atomic(repo, order_id, _operation, action="CLAIM")
    logger.info(
        "[CLAIM] request on order=%s %s by %s",
        order.order_number,
        "approved" if approve else "rejected",
        actor.identifier,
    )
    return order


def assign_for_dispatch(repo: FulfillmentRepository, order_id: int, worker_id: int, actor: Actor) -> Order:
    def _operation(order: Order) -> Order:
        worker = repo.get_worker(worker_id)
        before = order_snapshot(order)
        claim_arbitration.assign_for_dispatch(order, worker, actor)
        log_action(
            repo,
            actor=actor,
            action_type="dispatch",
            order_id=order.id,
            before_snapshot=before,
            after_snapshot=order_snapshot(order),
        )
        return order

    order = _run_atomic(repo, order_id, _operation, action="DISPATCH")
    logger.info("[DISPATCH] order=%s handed to worker=%s by %s", order.order_number, worker_id, actor.identifier)
    return order


def cancel_order(
    repo: FulfillmentRepository,
    order_id: int,
    actor: Actor,
    reason: str,
    now: datetime | None = None,
) -> Order:
    cancelled_at = now or utc_now()

    def _operation(order: Order) -> Order:
        before = order_snapshot(order)
        order_status.cancel(order, actor, cancelled_at)
        repo.add(OrderCancellation(order_id=order.id, customer_id=order.customer_id, reason=reason, created_at=cancelled_at))
        notify_branch(
            repo,
            branch_id=order.branch_id,
            notification_type="order_cancelled",
            order_id=order.id,
            title="Order cancelled",
            message=f"The customer cancelled order {order.order_number}. Reason: {reason}",
        )
        log_action(
            repo,
            actor=actor,
            action_type="order_cancelled",
            order_id=order.id,
            before_snapshot=before,
            after_snapshot=order_snapshot(order),
        )
        return order

    order = _run_atomic(repo, order_id, _operation, action="CANCEL")
    logger.info("[CANCEL] order=%s cancelled by %s", order.order_number, actor.identifier)
    return order


def is_branch_open(repo: FulfillmentRepository, branch_id: int, now: datetime | None = None) -> bool:
    return opening_hours.is_branch_open(repo.get_branch(branch_id), now or local_now())


def get_next_open_time(repo: FulfillmentRepository, now: datetime | None = None) -> NextOpening | None:
    return opening_hours.get_next_open_time(repo.list_branches(), now or local_now())


def is_any_branch_open(repo: FulfillmentRepository, now: datetime | None = None) -> bool:
    return opening_hours.is_any_branch_open(repo.list_branches(), now or local_now())


def open_branches(repo: FulfillmentRepository, now: datetime | None = None) -> list[Branch]:
    return opening_hours.open_branches(repo.list_branches(), now or local_now())
