"""Order API schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from fulfillment.models.order import DeliveryType, OrderStatus, PaymentMethod
from fulfillment.services.claim_arbitration import ClaimOutcome


class OrderItemPayload(BaseModel):
    """Single order line payload."""

    product_id: int | None = None
    product_name: str = Field(min_length=1, max_length=255)
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    quantity: int = Field(default=1, ge=1)


class OrderCreate(BaseModel):
    """Checkout payload."""

    branch_id: int
    items: list[OrderItemPayload] = Field(min_length=1)
    payment_method: PaymentMethod
    delivery_type: DeliveryType
    delivery_fee: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    delivery_address: str | None = None
    notes: str | None = None


class OrderItemResponse(BaseModel):
    """Serialized order line."""

    product_id: int | None
    product_name: str
    unit_price: Decimal
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Serialized order with fulfillment fields."""

    id: int
    order_number: str
    branch_id: int
    customer_id: int | None
    status: OrderStatus
    payment_method: PaymentMethod
    delivery_type: DeliveryType
    delivery_address: str | None
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    delivery_id: int | None
    delivery_requested_by: int | None
    request_approved: bool
    assigned_by_branch: bool
    admin_approved: bool
    created_at: datetime
    items: list[OrderItemResponse]

    model_config = ConfigDict(from_attributes=True)


class StatusUpdate(BaseModel):
    status: OrderStatus


class CancelRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class ClaimResolution(BaseModel):
    approve: bool


class DispatchRequest(BaseModel):
    worker_id: int


class ClaimResponse(BaseModel):
    outcome: ClaimOutcome
    order: OrderResponse
