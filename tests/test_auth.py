"""Authentication endpoint tests."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from fulfillment.core.config import settings
from fulfillment.db import session as db_session
from fulfillment.db.base import Base
from fulfillment.main import app
from fulfillment.models import User, UserRole
from fulfillment.models.user import normalize_user_role


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _use_test_database(tmp_path: Path, monkeypatch, name: str) -> sessionmaker:
    engine = _build_test_engine(tmp_path / name)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "admin_pass", "admin-secret")
    return testing_session_local


def test_register_creates_customer(tmp_path: Path, monkeypatch) -> None:
    """Register should create a customer account and return identity fields."""
    testing_session_local = _use_test_database(tmp_path, monkeypatch, "test_register.db")

    with TestClient(app) as client:
        response = client.post(
            "/api/v1/auth/register",
            json={"username": "hungry", "email": "user@example.com", "password": "secret123"},
        )

    assert response.status_code == 201
    body = response.json()
    assert body["id"] > 0
    assert body["username"] == "hungry"
    assert body["role"] == "CUSTOMER"

    with testing_session_local() as db:
        user = db.scalar(select(User).where(User.id == int(body["id"])).limit(1))
        assert user is not None
        assert user.role == UserRole.CUSTOMER
        assert user.password_hash != "secret123"


def test_register_rejects_taken_username(tmp_path: Path, monkeypatch) -> None:
    _use_test_database(tmp_path, monkeypatch, "test_register_taken.db")

    with TestClient(app) as client:
        first = client.post("/api/v1/auth/register", json={"username": "hungry", "password": "secret123"})
        second = client.post("/api/v1/auth/register", json={"username": "hungry", "password": "other123"})

    assert first.status_code == 201
    assert second.status_code == 400


def test_login_returns_token_and_me_resolves_it(tmp_path: Path, monkeypatch) -> None:
    """Login should return a bearer token accepted by the me endpoint."""
    _use_test_database(tmp_path, monkeypatch, "test_login.db")

    with TestClient(app) as client:
        client.post("/api/v1/auth/register", json={"username": "me", "password": "secret123"})
        login_response = client.post("/api/v1/auth/login", json={"username": "me", "password": "secret123"})
        assert login_response.status_code == 200
        payload = login_response.json()
        assert isinstance(payload.get("access_token"), str)
        assert payload.get("token_type") == "bearer"

        me_response = client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {payload['access_token']}"},
        )

    assert me_response.status_code == 200
    assert me_response.json()["username"] == "me"


def test_login_rejects_wrong_password(tmp_path: Path, monkeypatch) -> None:
    _use_test_database(tmp_path, monkeypatch, "test_login_wrong.db")

    with TestClient(app) as client:
        client.post("/api/v1/auth/register", json={"username": "me", "password": "secret123"})
        response = client.post("/api/v1/auth/login", json={"username": "me", "password": "nope"})

    assert response.status_code == 401


def test_invalid_token_is_rejected(tmp_path: Path, monkeypatch) -> None:
    _use_test_database(tmp_path, monkeypatch, "test_bad_token.db")

    with TestClient(app) as client:
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401


def test_only_admin_creates_branch_staff(tmp_path: Path, monkeypatch) -> None:
    _use_test_database(tmp_path, monkeypatch, "test_staff.db")

    with TestClient(app) as client:
        client.post("/api/v1/auth/register", json={"username": "customer", "password": "secret123"})
        customer_token = client.post(
            "/api/v1/auth/login", json={"username": "customer", "password": "secret123"}
        ).json()["access_token"]
        admin_token = client.post(
            "/api/v1/auth/login", json={"username": settings.admin_user, "password": "admin-secret"}
        ).json()["access_token"]
        branch_id = client.post(
            "/api/v1/branches", json={"name": "Central"}, headers={"Authorization": f"Bearer {admin_token}"}
        ).json()["id"]
        staff_payload = {"username": "kitchen", "password": "secret123", "role": "branch", "branch_id": branch_id}

        as_customer = client.post(
            "/api/v1/auth/staff", json=staff_payload, headers={"Authorization": f"Bearer {customer_token}"}
        )
        missing_branch = client.post(
            "/api/v1/auth/staff",
            json={**staff_payload, "branch_id": None},
            headers={"Authorization": f"Bearer {admin_token}"},
        )
        as_admin = client.post(
            "/api/v1/auth/staff", json=staff_payload, headers={"Authorization": f"Bearer {admin_token}"}
        )

    assert as_customer.status_code == 403
    assert as_customer.json()["code"] == "not_authorized"
    assert missing_branch.status_code == 400
    assert as_admin.status_code == 201
    assert as_admin.json()["role"] == "BRANCH"
    assert as_admin.json()["branch_id"] == branch_id


def test_normalize_user_role_accepts_members_and_loose_strings() -> None:
    assert normalize_user_role(UserRole.CUSTOMER) is UserRole.CUSTOMER
    assert normalize_user_role(UserRole.BRANCH) is UserRole.BRANCH
    assert normalize_user_role(" delivery ") is UserRole.DELIVERY

    with pytest.raises(ValueError):
        normalize_user_role("chef")
    with pytest.raises(ValueError):
        normalize_user_role(None)


def test_delivery_self_registration_creates_pending_worker(tmp_path: Path, monkeypatch) -> None:
    testing_session_local = _use_test_database(tmp_path, monkeypatch, "test_delivery_register.db")

    with TestClient(app) as client:
        admin_token = client.post(
            "/api/v1/auth/login", json={"username": settings.admin_user, "password": "admin-secret"}
        ).json()["access_token"]
        branch_id = client.post(
            "/api/v1/branches", json={"name": "Central"}, headers={"Authorization": f"Bearer {admin_token}"}
        ).json()["id"]
        response = client.post(
            "/api/v1/deliveries/register",
            json={"username": "rider", "password": "secret123", "branch_id": branch_id, "name": "Rider"},
        )

    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    with testing_session_local() as db:
        user = db.scalar(select(User).where(User.username == "rider").limit(1))
        assert user is not None
        assert user.role == UserRole.DELIVERY
        assert user.branch_id == branch_id
