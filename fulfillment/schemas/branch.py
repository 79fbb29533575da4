"""Branch and business-hours schemas."""

from datetime import time

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BranchCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    address: str | None = None
    phone: str | None = None


class BusinessHoursPayload(BaseModel):
    """One weekday entry (0 = Monday)."""

    day_of_week: int = Field(ge=0, le=6)
    is_open: bool = True
    open_time: time
    close_time: time

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def _close_after_open(self) -> "BusinessHoursPayload":
        if self.is_open and self.close_time <= self.open_time:
            raise ValueError("close_time must be later than open_time on the same day")
        return self


class BusinessHoursUpdate(BaseModel):
    days: list[BusinessHoursPayload] = Field(max_length=7)


class BranchResponse(BaseModel):
    id: int
    name: str
    address: str | None
    phone: str | None
    is_active: bool
    business_hours: list[BusinessHoursPayload]

    model_config = ConfigDict(from_attributes=True)


class BranchOpenResponse(BaseModel):
    branch_id: int
    is_open: bool


class NextOpeningResponse(BaseModel):
    day_offset: int
    weekday: int
    open_time: time
    branch_id: int | None
    label: str


class FleetStatusResponse(BaseModel):
    is_any_open: bool
    open_branch_ids: list[int]
    next_opening: NextOpeningResponse | None
    message: str


class NotificationResponse(BaseModel):
    id: int
    branch_id: int
    type: str
    order_id: int
    delivery_id: int | None
    title: str
    message: str
    read: bool

    model_config = ConfigDict(from_attributes=True)
