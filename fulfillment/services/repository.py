"""Storage contract for the fulfillment core and its SQLAlchemy implementation."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from fulfillment.models import Branch, DeliveryWorker, Order
from fulfillment.services.claim_arbitration import ACTIVE_ASSIGNMENT_STATUSES
from fulfillment.services.errors import EntityNotFound, WriteConflict

logger = logging.getLogger(__name__)


class FulfillmentRepository(Protocol):
    """Backend-agnostic contract used by the fulfillment orchestrator.

    Implementations MUST make ``commit`` fail with :class:`WriteConflict` when
    another writer changed the same order since it was loaded, so that
    check-then-set operations never both succeed.
    """

    def get_order(self, order_id: int) -> Order:
        """Load an order or raise EntityNotFound."""
        ...

    def get_worker(self, worker_id: int) -> DeliveryWorker:
        """Load a delivery worker or raise EntityNotFound."""
        ...

    def get_branch(self, branch_id: int) -> Branch:
        """Load a branch with its business hours or raise EntityNotFound."""
        ...

    def list_branches(self) -> list[Branch]:
        """Active branches with their business hours."""
        ...

    def count_active_assignments(self, worker_id: int, exclude_order_id: int | None = None) -> int:
        """Orders assigned to the worker that are still preparing or out for delivery."""
        ...

    def add(self, entity: object) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class SqlAlchemyRepository:
    """FulfillmentRepository backed by a SQLAlchemy session.

    Orders carry a ``version_id_col``; a stale version at flush time surfaces
    as :class:`WriteConflict`.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_order(self, order_id: int) -> Order:
        order = self.session.get(Order, order_id)
        if order is None:
            raise EntityNotFound("Order", order_id)
        return order

    def get_worker(self, worker_id: int) -> DeliveryWorker:
        worker = self.session.get(DeliveryWorker, worker_id)
        if worker is None:
            raise EntityNotFound("DeliveryWorker", worker_id)
        return worker

    def get_branch(self, branch_id: int) -> Branch:
        branch = self.session.get(Branch, branch_id, options=[selectinload(Branch.business_hours)])
        if branch is None:
            raise EntityNotFound("Branch", branch_id)
        return branch

    def list_branches(self) -> list[Branch]:
        return list(
            self.session.scalars(
                select(Branch)
                .where(Branch.is_active.is_(True))
                .options(selectinload(Branch.business_hours))
                .order_by(Branch.id.asc())
            ).all()
        )

    def count_active_assignments(self, worker_id: int, exclude_order_id: int | None = None) -> int:
        query = select(func.count(Order.id)).where(
            Order.delivery_id == worker_id,
            Order.status.in_(list(ACTIVE_ASSIGNMENT_STATUSES)),
        )
        if exclude_order_id is not None:
            query = query.where(Order.id != exclude_order_id)
        return int(self.session.scalar(query) or 0)

    def add(self, entity: object) -> None:
        self.session.add(entity)

    def commit(self) -> None:
        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            logger.warning("[STORE] Concurrent update detected: %s", exc)
            raise WriteConflict(str(exc)) from exc
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def rollback(self) -> None:
        self.session.rollback()
