"""
Pydantic Schemas for Request/Response Validation

Wire format is camelCase (``deliveryType``, ``specialInstructions``) to match
the web client; Python attributes stay snake_case.

Monetary request fields are *claims* from the client. They are shape-checked
here and re-derived by the pricing service; nothing in this module trusts them.
"""

import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


PHONE_PATTERN = r"^\+?[0-9]{10,15}$"
TABLE_NUMBER_PATTERN = r"^[0-9]{1,3}$"
MIN_ADDRESS_LENGTH = 10


def require_json_number(value, message: str):
    """Reject quoted numbers; amounts must arrive as JSON numbers."""
    if isinstance(value, (str, bool)):
        raise ValueError(message)
    return value


class CamelModel(BaseModel):
    """Base model reading and writing camelCase JSON keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# ENUMS
# =============================================================================

class DeliveryTypeEnum(str, Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class OrderStatusEnum(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethodEnum(str, Enum):
    CASH = "cash"
    UPI = "upi"
    CARD = "card"
    WALLET = "wallet"


# =============================================================================
# ORDER INTAKE REQUEST
# =============================================================================

class CartLine(CamelModel):
    """Single cart line as submitted by the client."""
    name: str = Field(..., min_length=1, max_length=200, examples=["Butter Naan"])
    price: Decimal = Field(..., gt=0, le=100000, examples=[60])
    quantity: int = Field(..., ge=1, le=99, strict=True, examples=[2])
    special_instructions: Optional[str] = Field(None, max_length=500)

    @field_validator("price", mode="before")
    @classmethod
    def validate_price_type(cls, v):
        return require_json_number(v, "Item price must be a number")


class OrderRequest(CamelModel):
    """Checkout submission. Totals are verified server-side, never stored as sent."""

    phone: str = Field(..., examples=["+919876543210"])
    delivery_type: DeliveryTypeEnum = Field(..., examples=["takeaway"])
    table_number: Optional[str] = Field(None, examples=["7"])
    address: Optional[str] = Field(None, min_length=MIN_ADDRESS_LENGTH, max_length=500)
    special_requests: Optional[str] = Field(None, max_length=500)

    items: List[CartLine] = Field(..., min_length=1, max_length=50)

    subtotal: Decimal = Field(..., gt=0, le=1_000_000)
    tax: Decimal = Field(..., ge=0, le=100_000)
    delivery_fee: Decimal = Field(..., ge=0, le=1000)
    total: Decimal = Field(..., gt=0, le=1_000_000)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not re.fullmatch(PHONE_PATTERN, v):
            raise ValueError("Invalid phone number format")
        return v

    @field_validator("table_number")
    @classmethod
    def validate_table_number(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not re.fullmatch(TABLE_NUMBER_PATTERN, v):
            raise ValueError("Invalid table number format")
        return v

    @field_validator("subtotal", "tax", "delivery_fee", "total", mode="before")
    @classmethod
    def validate_amount_types(cls, v):
        return require_json_number(v, "Order amounts must be numbers")

    @model_validator(mode="after")
    def check_conditional_fields(self) -> "OrderRequest":
        if self.delivery_type == DeliveryTypeEnum.DINE_IN and not self.table_number:
            raise ValueError("Table number required for dine-in orders")
        if self.delivery_type == DeliveryTypeEnum.DELIVERY:
            if not self.address or len(self.address.strip()) < MIN_ADDRESS_LENGTH:
                raise ValueError("Valid address required for delivery orders")
        return self


# =============================================================================
# ORDER INTAKE RESPONSE
# =============================================================================

class CreatedOrder(CamelModel):
    id: UUID
    order_number: str
    total: float


class OrderCreateResponse(CamelModel):
    """Response after successfully creating an order."""
    success: bool = True
    order: CreatedOrder


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    details: Optional[List[str]] = None


# =============================================================================
# KITCHEN NOTIFICATION
# =============================================================================

class NotificationItem(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., ge=1, le=100, strict=True)
    special_instructions: Optional[str] = Field(None, max_length=500)


class KitchenNotificationRequest(CamelModel):
    """Relay input. Validated on its own; the caller is not trusted."""
    order_id: UUID
    order_number: str = Field(..., min_length=1, max_length=50)
    items: List[NotificationItem] = Field(..., min_length=1, max_length=50)
    table_number: Optional[int] = Field(None, ge=1, le=999)
    delivery_type: DeliveryTypeEnum
    total: float = Field(..., gt=0, le=1_000_000)
    phone_number: str = Field(..., min_length=1, max_length=20)

    @field_validator("total", mode="before")
    @classmethod
    def validate_total_type(cls, v):
        return require_json_number(v, "Total must be a number")

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not re.fullmatch(PHONE_PATTERN, v):
            raise ValueError("Invalid phone number format")
        return v


class NotificationResponse(CamelModel):
    """Response after the kitchen was notified."""
    success: bool
    message: str
    message_sid: Optional[str] = None


# =============================================================================
# ORDER WORKFLOW
# =============================================================================

class MenuItemResponse(CamelModel):
    id: UUID
    name: str
    description: Optional[str]
    category: str
    price: float
    is_available: bool
    is_vegetarian: bool

    model_config = ConfigDict(from_attributes=True)


class OrderItemResponse(CamelModel):
    id: UUID
    item_name: str
    item_price: float
    quantity: int
    special_instructions: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(CamelModel):
    """Response schema for a single order with its items."""
    id: UUID
    order_number: str
    phone_number: str
    delivery_type: str
    table_number: Optional[int] = None
    delivery_address: Optional[str]
    special_instructions: Optional[str]
    subtotal: float
    tax: float
    delivery_fee: float
    total: float
    status: str
    payment_status: str
    created_at: Optional[datetime]
    items: List[OrderItemResponse] = []

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        """Build from an ORM ``Order`` with its items and table loaded."""
        return cls(
            id=order.id,
            order_number=order.order_number,
            phone_number=order.phone_number,
            delivery_type=order.delivery_type.value,
            table_number=order.table.table_number if order.table else None,
            delivery_address=order.delivery_address,
            special_instructions=order.special_instructions,
            subtotal=order.subtotal,
            tax=order.tax,
            delivery_fee=order.delivery_fee,
            total=order.total,
            status=order.status.value,
            payment_status=order.payment_status.value,
            created_at=order.created_at,
            items=[OrderItemResponse.model_validate(item) for item in order.items],
        )


class OrderStatusUpdate(CamelModel):
    status: OrderStatusEnum


class PaymentCreate(CamelModel):
    payment_method: PaymentMethodEnum = Field(..., examples=["upi"])


class PaymentResponse(CamelModel):
    id: UUID
    order_id: UUID
    amount: float
    payment_method: str
    transaction_id: Optional[str]
    status: str

    @classmethod
    def from_payment(cls, payment) -> "PaymentResponse":
        return cls(
            id=payment.id,
            order_id=payment.order_id,
            amount=payment.amount,
            payment_method=payment.payment_method,
            transaction_id=payment.transaction_id,
            status=payment.status.value,
        )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    rate_limiter: str
    notification_service: str
    timestamp: datetime
