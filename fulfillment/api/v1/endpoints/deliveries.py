"""Delivery worker endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from fulfillment.core.security import get_current_actor, get_password_hash
from fulfillment.db.session import get_db
from fulfillment.models import DeliveryWorker, Order, UserRole
from fulfillment.schemas.delivery import WorkerRegister, WorkerResponse, WorkerStatusUpdate
from fulfillment.schemas.order import OrderResponse
from fulfillment.services.delivery_service import list_active_orders, register_worker, remove_worker, set_worker_status
from fulfillment.services.repository import SqlAlchemyRepository
from fulfillment.services.security_guards import Actor
from fulfillment.services.user_service import create_user, get_user_by_username

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=WorkerResponse, status_code=status.HTTP_201_CREATED)
def register(payload: WorkerRegister, db: Session = Depends(get_db)) -> DeliveryWorker:
    """Create the login account and a worker profile awaiting branch approval."""
    SqlAlchemyRepository(db).get_branch(payload.branch_id)
    if get_user_by_username(db=db, username=payload.username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already registered")
    user = create_user(
        db=db,
        username=payload.username,
        hashed_password=get_password_hash(payload.password),
        role=UserRole.DELIVERY,
        branch_id=payload.branch_id,
    )
    return register_worker(
        db,
        user=user,
        branch_id=payload.branch_id,
        name=payload.name,
        phone=payload.phone,
        vehicle_type=payload.vehicle_type,
    )


@router.post("/{worker_id}/status", response_model=WorkerResponse)
def update_status(
    worker_id: int,
    payload: WorkerStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> DeliveryWorker:
    return set_worker_status(db, actor, worker_id, payload.status)


@router.delete("/{worker_id}", response_model=WorkerResponse)
def delete_worker(worker_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> DeliveryWorker:
    worker = remove_worker(db, actor, worker_id)
    logger.info("[DELIVERY] Worker %s removed by %s", worker.id, actor.identifier)
    return worker


@router.get("/{worker_id}/orders", response_model=list[OrderResponse])
def worker_orders(worker_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> list[Order]:
    """Orders the worker currently carries or is preparing to carry."""
    return list_active_orders(db, actor, worker_id)
