"""Order endpoints: checkout, kitchen progress, claims and dispatch."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.core.security import get_current_actor
from fulfillment.db.session import get_db
from fulfillment.models import DeliveryType, Order, OrderStatus, UserRole
from fulfillment.schemas.order import (
    CancelRequest,
    ClaimResolution,
    ClaimResponse,
    DispatchRequest,
    OrderCreate,
    OrderResponse,
    StatusUpdate,
)
from fulfillment.services import fulfillment_service
from fulfillment.services.errors import EntityNotFound
from fulfillment.services.order_service import LineItem, create_order
from fulfillment.services.order_status import sort_orders_by_priority
from fulfillment.services.repository import SqlAlchemyRepository
from fulfillment.services.security_guards import Actor

router: APIRouter = APIRouter()


def _require_customer_or_admin(actor: Actor) -> None:
    if actor.role not in {UserRole.CUSTOMER, UserRole.ADMIN}:
        raise HTTPException(status_code=403, detail="Forbidden")


def _require_delivery_worker(actor: Actor) -> int:
    if actor.role != UserRole.DELIVERY or actor.worker_id is None:
        raise HTTPException(status_code=403, detail="Only delivery workers can claim orders")
    return actor.worker_id


def _ensure_can_view(actor: Actor, order: Order) -> None:
    """Return 404 rather than 403 so order ids of other parties do not leak."""
    if actor.role == UserRole.ADMIN:
        return
    if actor.role == UserRole.BRANCH and actor.branch_id == order.branch_id:
        return
    if actor.role == UserRole.CUSTOMER and order.customer_id == actor.user_id:
        return
    if actor.role == UserRole.DELIVERY and actor.branch_id == order.branch_id:
        return
    raise EntityNotFound("Order", order.id)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Order:
    """Create a pending order; refused while the branch is closed."""
    _require_customer_or_admin(actor)
    return create_order(
        db,
        branch_id=payload.branch_id,
        customer_id=actor.user_id,
        items=[
            LineItem(
                product_id=item.product_id,
                product_name=item.product_name,
                unit_price=item.unit_price,
                quantity=item.quantity,
            )
            for item in payload.items
        ],
        payment_method=payload.payment_method,
        delivery_type=payload.delivery_type,
        delivery_fee=payload.delivery_fee,
        delivery_address=payload.delivery_address,
        notes=payload.notes,
    )


@router.get("", response_model=list[OrderResponse])
def list_orders(
    branch_id: int | None = Query(default=None),
    status_value: OrderStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[Order]:
    """List orders visible to the caller, open work first.

    Delivery workers see the unclaimed delivery orders of their branch that
    are being prepared.
    """
    query = select(Order)
    if actor.role == UserRole.BRANCH:
        query = query.where(Order.branch_id == actor.branch_id)
    elif actor.role == UserRole.CUSTOMER:
        query = query.where(Order.customer_id == actor.user_id)
    elif actor.role == UserRole.DELIVERY:
        query = query.where(
            Order.branch_id == actor.branch_id,
            Order.status == OrderStatus.PREPARING,
            Order.delivery_type == DeliveryType.DELIVERY,
            Order.delivery_id.is_(None),
            Order.delivery_requested_by.is_(None),
        )
    elif branch_id is not None:
        query = query.where(Order.branch_id == branch_id)

    if status_value is not None:
        query = query.where(Order.status == status_value)
    return sort_orders_by_priority(db.scalars(query).all())


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> Order:
    order = SqlAlchemyRepository(db).get_order(order_id)
    _ensure_can_view(actor, order)
    return order


@router.post("/{order_id}/status", response_model=OrderResponse)
def update_status(
    order_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Order:
    return fulfillment_service.advance_order(SqlAlchemyRepository(db), order_id, payload.status, actor)


@router.post("/{order_id}/approve-payment", response_model=OrderResponse)
def approve_payment(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> Order:
    return fulfillment_service.approve_payment(SqlAlchemyRepository(db), order_id, actor)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    payload: CancelRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Order:
    return fulfillment_service.cancel_order(SqlAlchemyRepository(db), order_id, actor, payload.reason)


@router.post("/{order_id}/claim", response_model=ClaimResponse)
def claim_order(order_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> ClaimResponse:
    worker_id = _require_delivery_worker(actor)
    order, outcome = fulfillment_service.claim_order(SqlAlchemyRepository(db), order_id, worker_id)
    return ClaimResponse(outcome=outcome, order=OrderResponse.model_validate(order))


@router.post("/{order_id}/claim-request", response_model=OrderResponse)
def resolve_claim_request(
    order_id: int,
    payload: ClaimResolution,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Order:
    return fulfillment_service.resolve_claim_request(SqlAlchemyRepository(db), order_id, payload.approve, actor)


@router.post("/{order_id}/dispatch", response_model=OrderResponse)
def dispatch_order(
    order_id: int,
    payload: DispatchRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Order:
    return fulfillment_service.assign_for_dispatch(SqlAlchemyRepository(db), order_id, payload.worker_id, actor)
