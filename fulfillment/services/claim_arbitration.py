"""Delivery claim arbitration.

A worker claiming a ``preparing`` order either gets it directly or, when the
worker is already busy with another active order, leaves a request that
branch staff or an admin must approve. ``ready`` orders are handed over by
the branch through :func:`assign_for_dispatch` instead.
"""

from __future__ import annotations

from enum import Enum

from fulfillment.models import DeliveryType, DeliveryWorker, Order, OrderStatus, WorkerStatus
from fulfillment.services.errors import AlreadyClaimed, InvalidTransition, NoActiveRequest, WorkerNotEligible
from fulfillment.services.order_status import set_status
from fulfillment.services.security_guards import Actor, ensure_branch_staff_or_admin

# Statuses counted against a worker's capacity.
ACTIVE_ASSIGNMENT_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.PREPARING, OrderStatus.DISPATCHED})


class ClaimOutcome(str, Enum):
    ASSIGNED = "assigned"
    REQUESTED = "requested"


def ensure_worker_available(worker: DeliveryWorker) -> None:
    if worker.status != WorkerStatus.APPROVED or not worker.is_active:
        raise WorkerNotEligible(f"Delivery worker {worker.id} is not approved")


def claim(order: Order, worker: DeliveryWorker, active_assignments: int) -> ClaimOutcome:
    """Arbitrate a worker's claim on an order.

    ``active_assignments`` is the number of other orders currently assigned to
    the worker with a status in :data:`ACTIVE_ASSIGNMENT_STATUSES`.
    """
    ensure_worker_available(worker)
    if worker.branch_id != order.branch_id:
        raise WorkerNotEligible(f"Delivery worker {worker.id} belongs to another branch")

    if OrderStatus(order.status) != OrderStatus.PREPARING:
        raise InvalidTransition(f"Order {order.order_number} is not open for claims")
    if order.delivery_type != DeliveryType.DELIVERY:
        raise InvalidTransition(f"Order {order.order_number} is a pickup order")

    if order.delivery_id is not None:
        raise AlreadyClaimed(f"Order {order.order_number} already has a delivery worker")
    if order.delivery_requested_by is not None:
        raise AlreadyClaimed(f"Order {order.order_number} already has a pending claim request")

    if active_assignments == 0:
        order.delivery_id = worker.id
        order.assigned_by_branch = False
        return ClaimOutcome.ASSIGNED

    order.delivery_requested_by = worker.id
    order.request_approved = False
    return ClaimOutcome.REQUESTED


def resolve_request(order: Order, approve: bool, actor: Actor) -> Order:
    """Approve or reject a pending claim request."""
    ensure_branch_staff_or_admin(actor, order.branch_id)
    if order.delivery_requested_by is None:
        raise NoActiveRequest(f"Order {order.order_number} has no pending claim request")
    if OrderStatus(order.status) != OrderStatus.PREPARING:
        raise InvalidTransition(f"Order {order.order_number} is no longer preparing")

    if approve:
        order.delivery_id = order.delivery_requested_by
        order.delivery_requested_by = None
        order.request_approved = True
        order.assigned_by_branch = True
    else:
        order.delivery_requested_by = None
        order.request_approved = False
    return order


def assign_for_dispatch(order: Order, worker: DeliveryWorker, actor: Actor) -> Order:
    """Branch hand-off of a ready order to a worker at the counter.

    Sets the worker and moves the order to ``dispatched`` together; callers
    commit both in one transaction.
    """
    ensure_branch_staff_or_admin(actor, order.branch_id)
    if OrderStatus(order.status) != OrderStatus.READY:
        raise InvalidTransition(f"Order {order.order_number} is not ready for dispatch")
    ensure_worker_available(worker)
    if worker.branch_id != order.branch_id:
        raise WorkerNotEligible(f"Delivery worker {worker.id} belongs to another branch")

    order.delivery_id = worker.id
    order.delivery_requested_by = None
    order.assigned_by_branch = True
    set_status(order, OrderStatus.DISPATCHED)
    return order
