"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from fulfillment.models import audit_log as _audit_log  # noqa: E402,F401
from fulfillment.models import branch as _branch  # noqa: E402,F401
from fulfillment.models import delivery as _delivery  # noqa: E402,F401
from fulfillment.models import notification as _notification  # noqa: E402,F401
from fulfillment.models import order as _order  # noqa: E402,F401
from fulfillment.models import user as _user  # noqa: E402,F401
