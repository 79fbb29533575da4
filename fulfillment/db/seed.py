"""Database seeding helpers."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.core.config import settings
from fulfillment.core.security import get_password_hash
from fulfillment.models import User, UserRole

logger = logging.getLogger(__name__)


def ensure_default_admin(session: Session) -> bool:
    """Ensure an active admin account exists.

    Returns:
        bool: True when the configured admin existed before this call.
    """
    existing_admin = session.scalar(select(User).where(User.username == settings.admin_user).limit(1))
    if existing_admin is not None:
        if not existing_admin.is_active or existing_admin.role != UserRole.ADMIN:
            logger.warning("[BOOTSTRAP] Admin %s re-activated with ADMIN role.", existing_admin.username)
            existing_admin.is_active = True
            existing_admin.role = UserRole.ADMIN
            session.commit()
        return True

    if not settings.admin_pass:
        if settings.app_env != "dev":
            logger.warning("[BOOTSTRAP] ADMIN_PASS not set; skipping admin creation.")
            return False
        password = "admin123"
        logger.warning("[SECURITY] Default admin account created with dev password. Set ADMIN_PASS.")
    else:
        password = settings.admin_pass

    session.add(
        User(
            username=settings.admin_user,
            password_hash=get_password_hash(password),
            role=UserRole.ADMIN,
            email=None,
            is_active=True,
        )
    )
    session.commit()
    return False
