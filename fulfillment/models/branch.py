"""Branch and weekly business hours ORM models."""

from datetime import datetime, time, timezone

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fulfillment.db.base import Base


class Branch(Base):
    """Represents a branch kitchen that fulfills orders."""

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    business_hours: Mapped[list["BusinessHours"]] = relationship(
        back_populates="branch",
        cascade="all, delete-orphan",
        order_by="BusinessHours.day_of_week",
    )


class BusinessHours(Base):
    """Opening hours of a branch for one weekday (0 = Monday)."""

    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("branch_id", "day_of_week", name="uq_business_hours_branch_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_business_hours_day_of_week"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    open_time: Mapped[time] = mapped_column(Time, nullable=False)
    close_time: Mapped[time] = mapped_column(Time, nullable=False)

    branch: Mapped[Branch] = relationship(back_populates="business_hours")
