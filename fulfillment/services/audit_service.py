"""Audit log helpers."""

from __future__ import annotations

from typing import Any

from fulfillment.models import AuditLog, Order, OrderStatus
from fulfillment.services.repository import FulfillmentRepository
from fulfillment.services.security_guards import Actor


def order_snapshot(order: Order) -> dict[str, Any]:
    """Fulfillment fields of an order in JSON-friendly form."""
    return {
        "status": OrderStatus(order.status).value,
        "delivery_id": order.delivery_id,
        "delivery_requested_by": order.delivery_requested_by,
        "request_approved": order.request_approved,
        "assigned_by_branch": order.assigned_by_branch,
        "admin_approved": order.admin_approved,
    }


def log_action(
    repo: FulfillmentRepository,
    *,
    actor: Actor | None,
    action_type: str,
    order_id: int | None = None,
    before_snapshot: dict[str, Any] | None = None,
    after_snapshot: dict[str, Any] | None = None,
) -> None:
    actor_identifier = "anonymous"
    actor_id = None
    if actor is not None:
        actor_id = actor.user_id
        actor_identifier = actor.identifier

    repo.add(
        AuditLog(
            actor_user_id=actor_id,
            actor_identifier=actor_identifier,
            action_type=action_type,
            order_id=order_id,
            before_snapshot=before_snapshot,
            after_snapshot=after_snapshot,
        )
    )
