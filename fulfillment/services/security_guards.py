"""Centralized role guards for fulfillment operations."""

from __future__ import annotations

from dataclasses import dataclass

from fulfillment.models import User, UserRole
from fulfillment.services.errors import NotAuthorized


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation and on behalf of which branch or worker."""

    role: UserRole
    user_id: int | None = None
    branch_id: int | None = None
    worker_id: int | None = None
    identifier: str = "system"


def actor_from_user(user: User) -> Actor:
    worker_id = user.delivery_profile.id if user.delivery_profile is not None else None
    return Actor(
        role=UserRole(user.role),
        user_id=user.id,
        branch_id=user.branch_id,
        worker_id=worker_id,
        identifier=user.email or user.username,
    )


def ensure_role(actor: Actor, allowed_roles: set[UserRole]) -> None:
    """Ensure actor role is one of allowed roles."""
    if actor.role not in allowed_roles:
        raise NotAuthorized(f"Role {actor.role.value} cannot perform this action")


def ensure_admin(actor: Actor) -> None:
    ensure_role(actor, {UserRole.ADMIN})


def ensure_branch_staff_or_admin(actor: Actor, branch_id: int) -> None:
    """Allow admins anywhere and branch staff only inside their own branch."""
    ensure_role(actor, {UserRole.ADMIN, UserRole.BRANCH})
    if actor.role == UserRole.BRANCH and actor.branch_id != branch_id:
        raise NotAuthorized("Branch staff can only act on orders of their own branch")
