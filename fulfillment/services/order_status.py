"""Order status transition helpers and the transfer payment gate."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from fulfillment.core.config import settings
from fulfillment.models import DeliveryType, Order, OrderStatus, PaymentMethod, UserRole
from fulfillment.services.errors import (
    CancellationWindowClosed,
    InvalidTransition,
    NotAuthorized,
    PaymentNotApproved,
)
from fulfillment.services.security_guards import Actor, ensure_admin, ensure_branch_staff_or_admin, ensure_role
from fulfillment.utils.time import as_utc, minutes_since

ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.REJECTED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.REJECTED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.REJECTED},
    OrderStatus.READY: {OrderStatus.DISPATCHED, OrderStatus.REJECTED},
    OrderStatus.DISPATCHED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.REJECTED: set(),
}

# Only reachable through the dispatch hand-off, never through advance().
ARBITRATED_TARGETS: frozenset[OrderStatus] = frozenset({OrderStatus.DISPATCHED})

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.DELIVERED, OrderStatus.REJECTED})
CANCELLABLE_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

STATUS_PRIORITY: dict[OrderStatus, int] = {
    OrderStatus.PENDING: 1,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.READY: 3,
    OrderStatus.DISPATCHED: 4,
    OrderStatus.DELIVERED: 5,
    OrderStatus.REJECTED: 6,
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """Return whether order can move from current to new status."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def is_payment_gated(order: Order) -> bool:
    """Transfer orders stay locked in pending until an admin approves the payment."""
    return order.payment_method == PaymentMethod.TRANSFER and not order.admin_approved


def set_status(order: Order, new_status: OrderStatus) -> None:
    """Single write point for ``order.status``."""
    order.status = new_status


def _parse_status(value: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as exc:
        raise InvalidTransition(f"Unknown order status: {value!r}") from exc


def _authorize_advance(order: Order, target: OrderStatus, actor: Actor) -> None:
    if target == OrderStatus.DELIVERED and actor.role == UserRole.DELIVERY:
        if actor.worker_id is None or actor.worker_id != order.delivery_id:
            raise NotAuthorized("Only the assigned delivery worker can mark this order delivered")
        return
    ensure_branch_staff_or_admin(actor, order.branch_id)


def advance(order: Order, target_status: OrderStatus | str, actor: Actor) -> Order:
    """Move an order one step along the lifecycle.

    Checks run in a fixed order: transition table, actor role, payment gate,
    then the delivery-worker requirement for ``preparing -> ready``. Only
    ``status`` is mutated on success, except that rejecting an order also
    drops any pending claim request.
    """
    target = _parse_status(target_status)
    current = OrderStatus(order.status)

    if not can_transition(current, target) or target in ARBITRATED_TARGETS:
        raise InvalidTransition(
            f"Order {order.order_number} cannot move from {current.value} to {target.value}"
        )

    _authorize_advance(order, target, actor)

    if current == OrderStatus.PENDING and is_payment_gated(order):
        raise PaymentNotApproved(f"Transfer for order {order.order_number} is not approved yet")

    if (
        current == OrderStatus.PREPARING
        and target == OrderStatus.READY
        and order.delivery_type == DeliveryType.DELIVERY
        and order.delivery_id is None
    ):
        raise InvalidTransition(f"Order {order.order_number} has no delivery worker assigned yet")

    if target == OrderStatus.REJECTED:
        order.delivery_requested_by = None
        order.request_approved = False
    set_status(order, target)
    return order


def approve_payment(order: Order, actor: Actor, now: datetime) -> Order:
    """Open the payment gate. Does not change status."""
    ensure_admin(actor)
    if is_terminal(order.status):
        raise InvalidTransition(f"Order {order.order_number} is already {OrderStatus(order.status).value}")
    if order.admin_approved:
        return order

    order.admin_approved = True
    order.admin_approved_by = actor.user_id
    order.admin_approved_at = now
    return order


def cancel(order: Order, actor: Actor, now: datetime, window_minutes: int | None = None) -> Order:
    """Customer cancellation, offered only before the kitchen starts preparing."""
    ensure_role(actor, {UserRole.CUSTOMER, UserRole.ADMIN})
    if actor.role == UserRole.CUSTOMER and order.customer_id != actor.user_id:
        raise NotAuthorized("Customers can only cancel their own orders")

    current = OrderStatus(order.status)
    if current not in CANCELLABLE_STATUSES:
        raise InvalidTransition(f"Order {order.order_number} can no longer be cancelled ({current.value})")

    window = settings.cancellation_window_minutes if window_minutes is None else window_minutes
    if minutes_since(order.created_at, now) > window:
        raise CancellationWindowClosed(f"Orders can only be cancelled within {window} minutes")

    set_status(order, OrderStatus.REJECTED)
    return order


def sort_orders_by_priority(orders: Iterable[Order]) -> list[Order]:
    """Kitchen display order: open work first, oldest first within a status."""
    return sorted(
        orders,
        key=lambda order: (STATUS_PRIORITY.get(OrderStatus(order.status), 999), as_utc(order.created_at)),
    )
