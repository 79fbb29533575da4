"""Order placement: totals, sequential order numbers and the opening-hours gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fulfillment.core.config import settings
from fulfillment.models import DeliveryType, Order, OrderItem, OrderStatus, PaymentMethod
from fulfillment.services import opening_hours
from fulfillment.services.errors import BranchClosed, WriteConflict
from fulfillment.services.repository import SqlAlchemyRepository
from fulfillment.utils.time import local_now, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineItem:
    product_name: str
    unit_price: Decimal
    quantity: int
    product_id: int | None = None


def format_order_number(seq: int) -> str:
    return f"{settings.order_number_prefix}-{seq:04d}"


def next_order_seq(db: Session) -> int:
    return int(db.scalar(select(func.max(Order.order_seq))) or 0) + 1


def ensure_ordering_open(db: Session, branch_id: int, now: datetime) -> None:
    """Reject new orders when no branch, or the chosen branch, is open."""
    repo = SqlAlchemyRepository(db)
    branches = repo.list_branches()
    if not opening_hours.is_any_branch_open(branches, now):
        next_open = opening_hours.get_next_open_time(branches, now)
        raise BranchClosed(f"All branches are closed. Next opening: {opening_hours.describe_next_opening(next_open)}")
    branch = repo.get_branch(branch_id)
    if not opening_hours.is_branch_open(branch, now):
        next_open = opening_hours.next_opening(branch, now)
        raise BranchClosed(f"{branch.name} is closed. Next opening: {opening_hours.describe_next_opening(next_open)}")


def create_order(
    db: Session,
    *,
    branch_id: int,
    customer_id: int | None,
    items: list[LineItem],
    payment_method: PaymentMethod,
    delivery_type: DeliveryType,
    delivery_fee: Decimal = Decimal("0.00"),
    delivery_address: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Order:
    """Place an order in ``pending``; transfer orders start behind the payment gate."""
    ensure_ordering_open(db, branch_id, now or local_now())
    if not items:
        raise ValueError("An order needs at least one item")
    if delivery_type == DeliveryType.PICKUP:
        delivery_fee = Decimal("0.00")

    subtotal = sum((item.unit_price * item.quantity for item in items), Decimal("0.00"))
    attempts = max(1, settings.write_conflict_retries)
    for attempt in range(1, attempts + 1):
        seq = next_order_seq(db)
        order = Order(
            order_seq=seq,
            order_number=format_order_number(seq),
            branch_id=branch_id,
            customer_id=customer_id,
            status=OrderStatus.PENDING,
            payment_method=payment_method,
            delivery_type=delivery_type,
            delivery_address=delivery_address,
            notes=notes,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=subtotal + delivery_fee,
            request_approved=False,
            assigned_by_branch=False,
            admin_approved=payment_method == PaymentMethod.CASH,
            created_at=utc_now(),
            items=[
                OrderItem(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                )
                for item in items
            ],
        )
        db.add(order)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning("[ORDER] Order number %s taken, retrying (attempt %s/%s)", seq, attempt, attempts)
            continue
        db.refresh(order)
        logger.info("[ORDER] Created %s for branch_id=%s (%s)", order.order_number, branch_id, payment_method.value)
        return order
    raise WriteConflict("Could not allocate an order number")
