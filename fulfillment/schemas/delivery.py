"""Delivery worker schemas."""

from pydantic import BaseModel, ConfigDict, Field

from fulfillment.models.delivery import WorkerStatus


class WorkerRegister(BaseModel):
    """Self-registration payload; creates the login account and the worker profile."""

    username: str = Field(min_length=3, max_length=128)
    password: str = Field(min_length=6)
    branch_id: int
    name: str = Field(min_length=1, max_length=255)
    phone: str | None = None
    vehicle_type: str | None = None


class WorkerStatusUpdate(BaseModel):
    status: WorkerStatus


class WorkerResponse(BaseModel):
    id: int
    branch_id: int
    name: str
    phone: str | None
    vehicle_type: str | None
    status: WorkerStatus
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
