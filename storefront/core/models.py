from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel


class OrderStatusEnum(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPING = "shipping"
    SHIPPED = "shipped"
    REJECTED = "rejected"


class OrderItemStatusEnum(StrEnum):
    PENDING = "pending"
    SHIPPING = "shipping"
    SHIPPED = "shipped"
    FAILED_TO_SHIP = "failed to ship"


class PaymentMethodEnum(StrEnum):
    COD = "COD"
    PAYOS = "PayOS"
    VIETQR = "VietQR"


class PaymentStatusEnum(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class ShippingStatusEnum(StrEnum):
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    FAILED = "failed"


class Item(BaseModel):
    product_id: str
    name: str
    price: Decimal
    quantity: int = 1


class OrderItem(Item):
    id: str
    order_id: str
    status: OrderItemStatusEnum


class OrderStatusHistory(BaseModel):
    status: OrderStatusEnum
    created_at: datetime


class Order(BaseModel):
    id: str
    user_id: str
    email: str
    total_price: Decimal
    status: OrderStatusEnum
    items: list[OrderItem]
    status_history: list[OrderStatusHistory]
    created_at: datetime
    updated_at: datetime


class Payment(BaseModel):
    id: str
    order_id: str
    user_id: str
    amount: Decimal
    method: PaymentMethodEnum
    status: PaymentStatusEnum
    transaction_id: str | None = None
    paid_at: datetime | None = None
    reason: str | None = None
    created_at: datetime


class ShippingInfo(BaseModel):
    id: str
    order_item_id: str
    carrier: str
    tracking_number: str
    area: str | None = None
    status: ShippingStatusEnum
    created_at: datetime
    updated_at: datetime


class Caller(BaseModel):
    """Identity taken from a verified bearer token."""

    id: str
    email: str = ""


class EmailMessage(BaseModel):
    to: str
    subject: str
    body: str


class EventTypeEnum(StrEnum):
    NOTIFICATION_EMAIL = "NOTIFICATION.EMAIL"


class OutboxEventStatus(StrEnum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class OutboxEvent(BaseModel):
    id: str
    event_type: EventTypeEnum
    payload: dict
    status: OutboxEventStatus
    error: str | None = None
    created_at: datetime
