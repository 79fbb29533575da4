"""Authentication endpoints (API JWT)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from fulfillment.core.security import create_access_token, get_current_actor, get_current_user, get_password_hash, verify_password
from fulfillment.db.session import get_db
from fulfillment.models.user import User, UserRole, normalize_user_role
from fulfillment.schemas.auth import AuthUserResponse, LoginRequest, RegisterRequest, StaffCreateRequest, TokenResponse
from fulfillment.services.security_guards import Actor, ensure_admin
from fulfillment.services.user_service import create_user, get_user_by_email, get_user_by_username, touch_last_login

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)
STAFF_ROLES: set[UserRole] = {UserRole.ADMIN, UserRole.BRANCH}


def _ensure_available(db: Session, username: str, email: str | None) -> None:
    if get_user_by_username(db=db, username=username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already registered")
    if email and get_user_by_email(db=db, email=email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")


@router.post("/register", response_model=AuthUserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> User:
    """Customer self-registration."""
    _ensure_available(db, payload.username, payload.email)
    return create_user(
        db=db,
        username=payload.username,
        hashed_password=get_password_hash(payload.password),
        role=UserRole.CUSTOMER,
        email=payload.email,
    )


@router.post("/staff", response_model=AuthUserResponse, status_code=status.HTTP_201_CREATED)
def create_staff(
    payload: StaffCreateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> User:
    ensure_admin(actor)
    try:
        role = normalize_user_role(payload.role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if role not in STAFF_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    if role == UserRole.BRANCH and payload.branch_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Branch staff need a branch_id")
    _ensure_available(db, payload.username, payload.email)
    return create_user(
        db=db,
        username=payload.username,
        hashed_password=get_password_hash(payload.password),
        role=role,
        email=payload.email,
        branch_id=payload.branch_id,
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user: User | None = get_user_by_username(db=db, username=payload.username.strip())
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info("[AUTH] Failed login for username=%s", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")
    touch_last_login(db, user)
    return TokenResponse(access_token=create_access_token(data={"sub": str(user.id)}))


@router.get("/me", response_model=AuthUserResponse)
def me(current_user: User = Depends(get_current_user)) -> User:
    return current_user
