"""User account ORM model."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment.db.base import Base


class UserRole(str, Enum):
    """Closed set of actor roles."""

    ADMIN = "ADMIN"
    BRANCH = "BRANCH"
    DELIVERY = "DELIVERY"
    CUSTOMER = "CUSTOMER"


def normalize_user_role(value: UserRole | str | None) -> UserRole:
    """Map loosely formatted role input onto a canonical role."""
    if isinstance(value, UserRole):
        return value
    normalized = str(value or "").strip().upper()
    try:
        return UserRole(normalized)
    except ValueError as exc:
        raise ValueError(f"Unknown role: {value!r}") from exc


class User(Base):
    """System account used for username/password login."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SqlEnum(UserRole, name="user_role", native_enum=False, length=16),
        nullable=False,
    )
    branch_id: Mapped[int | None] = mapped_column(ForeignKey("branches.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    delivery_profile: Mapped["DeliveryWorker | None"] = relationship(back_populates="user", uselist=False)
