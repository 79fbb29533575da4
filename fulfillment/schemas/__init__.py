"""Schema exports."""

from fulfillment.schemas.auth import AuthUserResponse, LoginRequest, RegisterRequest, StaffCreateRequest, TokenResponse
from fulfillment.schemas.branch import (
    BranchCreate,
    BranchOpenResponse,
    BranchResponse,
    BusinessHoursPayload,
    BusinessHoursUpdate,
    FleetStatusResponse,
    NextOpeningResponse,
    NotificationResponse,
)
from fulfillment.schemas.delivery import WorkerRegister, WorkerResponse, WorkerStatusUpdate
from fulfillment.schemas.order import (
    CancelRequest,
    ClaimResolution,
    ClaimResponse,
    DispatchRequest,
    OrderCreate,
    OrderItemPayload,
    OrderItemResponse,
    OrderResponse,
    StatusUpdate,
)

__all__ = [
    "AuthUserResponse",
    "LoginRequest",
    "RegisterRequest",
    "StaffCreateRequest",
    "TokenResponse",
    "BranchCreate",
    "BranchOpenResponse",
    "BranchResponse",
    "BusinessHoursPayload",
    "BusinessHoursUpdate",
    "FleetStatusResponse",
    "NextOpeningResponse",
    "NotificationResponse",
    "WorkerRegister",
    "WorkerResponse",
    "WorkerStatusUpdate",
    "CancelRequest",
    "ClaimResolution",
    "ClaimResponse",
    "DispatchRequest",
    "OrderCreate",
    "OrderItemPayload",
    "OrderItemResponse",
    "OrderResponse",
    "StatusUpdate",
]
