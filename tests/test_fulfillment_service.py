"""Repository-backed fulfillment flow tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from fulfillment.core.config import settings
from fulfillment.db.base import Base
from fulfillment.models import (
    AuditLog,
    Branch,
    BranchNotification,
    DeliveryType,
    DeliveryWorker,
    Order,
    OrderCancellation,
    OrderStatus,
    PaymentMethod,
    User,
    UserRole,
    WorkerStatus,
)
from fulfillment.services import fulfillment_service
from fulfillment.services.claim_arbitration import ClaimOutcome
from fulfillment.services.errors import (
    AlreadyClaimed,
    BranchClosed,
    CancellationWindowClosed,
    EntityNotFound,
    NoActiveRequest,
    PaymentNotApproved,
    WriteConflict,
)
from fulfillment.services.order_service import LineItem, create_order
from fulfillment.services.repository import SqlAlchemyRepository
from fulfillment.services.security_guards import Actor

# Monday, inside the default 08:00-18:00 window.
MONDAY_NOON = datetime(2026, 10, 19, 12, 0)
ADMIN = Actor(role=UserRole.ADMIN, user_id=None, identifier="admin")


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _session_factory(db_file: Path) -> sessionmaker:
    engine = _build_test_engine(db_file)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _seed_branch(session: Session, name: str = "Central") -> Branch:
    branch = Branch(name=name, is_active=True)
    session.add(branch)
    session.commit()
    session.refresh(branch)
    return branch


def _seed_worker(session: Session, branch_id: int, name: str) -> DeliveryWorker:
    worker = DeliveryWorker(branch_id=branch_id, name=name, status=WorkerStatus.APPROVED, is_active=True)
    session.add(worker)
    session.commit()
    session.refresh(worker)
    return worker


def _seed_customer(session: Session, username: str = "customer") -> User:
    user = User(username=username, password_hash="x", role=UserRole.CUSTOMER, is_active=True)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _place_order(
    session: Session,
    branch_id: int,
    *,
    payment_method: PaymentMethod = PaymentMethod.CASH,
    delivery_type: DeliveryType = DeliveryType.DELIVERY,
    customer_id: int | None = None,
) -> Order:
    return create_order(
        session,
        branch_id=branch_id,
        customer_id=customer_id,
        items=[LineItem(product_name="Fries", unit_price=Decimal("4.50"), quantity=2)],
        payment_method=payment_method,
        delivery_type=delivery_type,
        delivery_fee=Decimal("2.00"),
        delivery_address="1 Main Street",
        now=MONDAY_NOON,
    )


def _staff(branch_id: int) -> Actor:
    return Actor(role=UserRole.BRANCH, user_id=None, branch_id=branch_id, identifier="kitchen")


def _courier(worker: DeliveryWorker) -> Actor:
    return Actor(role=UserRole.DELIVERY, branch_id=worker.branch_id, worker_id=worker.id, identifier=worker.name)


def test_end_to_end_cash_delivery(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "e2e.db")
    with session_local() as session:
        branch = _seed_branch(session)
        worker = _seed_worker(session, branch.id, "W1")
        order = _place_order(session, branch.id)
        assert order.order_number == "FRY-0001"
        assert order.status == OrderStatus.PENDING
        assert order.total == Decimal("11.00")

        repo = SqlAlchemyRepository(session)
        staff = _staff(branch.id)
        fulfillment_service.advance_order(repo, order.id, OrderStatus.PREPARING, staff)

        claimed, outcome = fulfillment_service.claim_order(repo, order.id, worker.id)
        assert outcome == ClaimOutcome.ASSIGNED
        assert claimed.delivery_id == worker.id

        fulfillment_service.advance_order(repo, order.id, OrderStatus.READY, staff)
        dispatched = fulfillment_service.assign_for_dispatch(repo, order.id, worker.id, staff)
        assert dispatched.status == OrderStatus.DISPATCHED
        assert dispatched.delivery_id == worker.id

        delivered = fulfillment_service.advance_order(repo, order.id, OrderStatus.DELIVERED, _courier(worker))
        assert delivered.status == OrderStatus.DELIVERED
        assert delivered.delivery_requested_by is None
        assert delivered.request_approved is False

        actions = session.scalars(select(AuditLog.action_type).where(AuditLog.order_id == order.id).order_by(AuditLog.id)).all()
        assert actions == ["order_status", "claim_assigned", "order_status", "dispatch", "order_status"]


def test_order_numbers_are_sequential(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "numbers.db")
    with session_local() as session:
        branch = _seed_branch(session)
        first = _place_order(session, branch.id)
        second = _place_order(session, branch.id, delivery_type=DeliveryType.PICKUP)

        assert (first.order_number, second.order_number) == ("FRY-0001", "FRY-0002")
        assert second.delivery_fee == Decimal("0.00")


def test_orders_are_refused_while_closed(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "closed.db")
    with session_local() as session:
        branch = _seed_branch(session)
        with pytest.raises(BranchClosed):
            create_order(
                session,
                branch_id=branch.id,
                customer_id=None,
                items=[LineItem(product_name="Fries", unit_price=Decimal("4.50"), quantity=1)],
                payment_method=PaymentMethod.CASH,
                delivery_type=DeliveryType.PICKUP,
                now=datetime(2026, 10, 19, 19, 0),
            )
        assert session.scalar(select(Order).limit(1)) is None


def test_transfer_order_waits_for_payment_approval(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "transfer.db")
    with session_local() as session:
        branch = _seed_branch(session)
        order = _place_order(session, branch.id, payment_method=PaymentMethod.TRANSFER)
        assert order.admin_approved is False
        repo = SqlAlchemyRepository(session)

        with pytest.raises(PaymentNotApproved):
            fulfillment_service.advance_order(repo, order.id, OrderStatus.CONFIRMED, _staff(branch.id))

        fulfillment_service.approve_payment(repo, order.id, ADMIN)
        confirmed = fulfillment_service.advance_order(repo, order.id, OrderStatus.CONFIRMED, _staff(branch.id))

        assert confirmed.status == OrderStatus.CONFIRMED
        assert confirmed.admin_approved_at is not None


def test_concurrent_claims_assign_exactly_one_worker(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "race.db")
    with session_local() as setup:
        branch = _seed_branch(setup)
        first_worker = _seed_worker(setup, branch.id, "W1")
        second_worker = _seed_worker(setup, branch.id, "W2")
        order = _place_order(setup, branch.id)
        fulfillment_service.advance_order(SqlAlchemyRepository(setup), order.id, OrderStatus.PREPARING, _staff(branch.id))
        order_id, first_id, second_id = order.id, first_worker.id, second_worker.id

    session_a = session_local()
    session_b = session_local()
    try:
        repo_a = SqlAlchemyRepository(session_a)
        repo_b = SqlAlchemyRepository(session_b)
        # Second caller has already read the unclaimed order.
        assert repo_b.get_order(order_id).delivery_id is None

        _, outcome = fulfillment_service.claim_order(repo_a, order_id, first_id)
        assert outcome == ClaimOutcome.ASSIGNED

        with pytest.raises(AlreadyClaimed):
            fulfillment_service.claim_order(repo_b, order_id, second_id)
    finally:
        session_a.close()
        session_b.close()

    with session_local() as verify:
        stored = verify.get(Order, order_id)
        assert stored is not None
        assert stored.delivery_id == first_id
        assert stored.delivery_requested_by is None
        claims = verify.scalars(select(AuditLog).where(AuditLog.action_type.like("claim_%"))).all()
        assert len(claims) == 1


def test_busy_worker_request_is_approved_by_branch(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "request.db")
    with session_local() as session:
        branch = _seed_branch(session)
        worker = _seed_worker(session, branch.id, "W1")
        repo = SqlAlchemyRepository(session)
        staff = _staff(branch.id)
        first = _place_order(session, branch.id)
        second = _place_order(session, branch.id)
        for order in (first, second):
            fulfillment_service.advance_order(repo, order.id, OrderStatus.PREPARING, staff)

        _, first_outcome = fulfillment_service.claim_order(repo, first.id, worker.id)
        requested, second_outcome = fulfillment_service.claim_order(repo, second.id, worker.id)

        assert first_outcome == ClaimOutcome.ASSIGNED
        assert second_outcome == ClaimOutcome.REQUESTED
        assert requested.delivery_id is None
        assert requested.delivery_requested_by == worker.id

        notification = session.scalar(select(BranchNotification).where(BranchNotification.order_id == second.id))
        assert notification is not None
        assert notification.type == "order_claim_request"
        assert notification.delivery_id == worker.id

        approved = fulfillment_service.resolve_claim_request(repo, second.id, True, staff)
        assert approved.delivery_id == worker.id
        assert approved.delivery_requested_by is None
        assert approved.request_approved is True

        with pytest.raises(NoActiveRequest):
            fulfillment_service.resolve_claim_request(repo, second.id, True, staff)
        assert session.get(Order, second.id).delivery_id == worker.id


def test_customer_cancellation_records_reason(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "cancel.db")
    with session_local() as session:
        branch = _seed_branch(session)
        customer = _seed_customer(session)
        order = _place_order(session, branch.id, customer_id=customer.id)
        actor = Actor(role=UserRole.CUSTOMER, user_id=customer.id, identifier=customer.username)
        repo = SqlAlchemyRepository(session)
        created_at = order.created_at.replace(tzinfo=timezone.utc)

        cancelled = fulfillment_service.cancel_order(repo, order.id, actor, "Changed my mind", now=created_at + timedelta(minutes=2))

        assert cancelled.status == OrderStatus.REJECTED
        record = session.scalar(select(OrderCancellation).where(OrderCancellation.order_id == order.id))
        assert record is not None
        assert record.reason == "Changed my mind"
        assert session.scalar(select(BranchNotification.type).where(BranchNotification.order_id == order.id)) == "order_cancelled"


def test_late_cancellation_leaves_order_untouched(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "late_cancel.db")
    with session_local() as session:
        branch = _seed_branch(session)
        customer = _seed_customer(session)
        order = _place_order(session, branch.id, customer_id=customer.id)
        actor = Actor(role=UserRole.CUSTOMER, user_id=customer.id)
        repo = SqlAlchemyRepository(session)
        late = order.created_at.replace(tzinfo=timezone.utc) + timedelta(minutes=settings.cancellation_window_minutes + 1)

        with pytest.raises(CancellationWindowClosed):
            fulfillment_service.cancel_order(repo, order.id, actor, "Too slow", now=late)

        assert session.get(Order, order.id).status == OrderStatus.PENDING
        assert session.scalar(select(OrderCancellation).limit(1)) is None


def test_unknown_order_raises_entity_not_found(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "missing.db")
    with session_local() as session:
        with pytest.raises(EntityNotFound):
            fulfillment_service.advance_order(SqlAlchemyRepository(session), 404, OrderStatus.CONFIRMED, ADMIN)


class _AlwaysConflictingRepository(SqlAlchemyRepository):
    def __init__(self, session: Session) -> None:
        super().__init__(session)
        self.commits = 0

    def commit(self) -> None:
        self.commits += 1
        self.session.rollback()
        raise WriteConflict("simulated")


def test_write_conflicts_are_retried_then_surfaced(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(settings, "write_conflict_retries", 3)
    session_local = _session_factory(tmp_path / "conflict.db")
    with session_local() as session:
        branch = _seed_branch(session)
        order = _place_order(session, branch.id)
        repo = _AlwaysConflictingRepository(session)

        with pytest.raises(WriteConflict):
            fulfillment_service.advance_order(repo, order.id, OrderStatus.CONFIRMED, _staff(branch.id))

        assert repo.commits == 3
        assert session.get(Order, order.id).status == OrderStatus.PENDING


def test_opening_hours_through_repository(tmp_path: Path) -> None:
    session_local = _session_factory(tmp_path / "hours.db")
    with session_local() as session:
        branch = _seed_branch(session)
        repo = SqlAlchemyRepository(session)

        assert fulfillment_service.is_branch_open(repo, branch.id, MONDAY_NOON)
        assert fulfillment_service.is_any_branch_open(repo, MONDAY_NOON)
        assert not fulfillment_service.is_any_branch_open(repo, datetime(2026, 10, 19, 18, 0))
        assert [open_branch.id for open_branch in fulfillment_service.open_branches(repo, MONDAY_NOON)] == [branch.id]
        assert fulfillment_service.open_branches(repo, datetime(2026, 10, 19, 18, 0)) == []

        opening = fulfillment_service.get_next_open_time(repo, datetime(2026, 10, 19, 18, 30))
        assert opening is not None
        assert opening.day_offset == 1
        assert opening.branch_id == branch.id
