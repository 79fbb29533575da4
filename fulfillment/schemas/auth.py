"""Authentication-related request and response schemas."""

from pydantic import BaseModel, ConfigDict

from fulfillment.models.user import UserRole


class RegisterRequest(BaseModel):
    """Payload for customer self-registration."""

    username: str
    password: str
    email: str | None = None


class StaffCreateRequest(BaseModel):
    """Payload for admin-created staff accounts."""

    username: str
    password: str
    role: str
    email: str | None = None
    branch_id: int | None = None


class LoginRequest(BaseModel):
    """Payload for user login."""

    username: str
    password: str


class TokenResponse(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"


class AuthUserResponse(BaseModel):
    """User response for auth endpoints."""

    id: int
    username: str
    email: str | None
    role: UserRole
    branch_id: int | None = None

    model_config = ConfigDict(from_attributes=True)
