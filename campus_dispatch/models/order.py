# campus_dispatch/models/order.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, Optional
from pydantic import BaseModel, Field, field_validator
from .base import TimeStampedModel

class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.REJECTED,
})

# Status -> timestamp column stamped when the order enters it
STATUS_TIMESTAMP_FIELDS: Dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PREPARING: "prepared_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.PICKED_UP: "picked_up_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.REJECTED: "cancelled_at",
}

class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    WALLET = "wallet"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

class OrderItem(BaseModel):
    """Line item with the unit price captured when the order was placed"""
    menu_item_id: int
    name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    special_instructions: str = ""

class Payment(BaseModel):
    """Pending payment placeholder created together with the order"""
    amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str
    paid_at: Optional[datetime] = None

class Order(TimeStampedModel):
    """Delivery order aggregate"""
    id: int
    order_number: str
    student_id: int
    vendor_id: int
    assigned_rider_id: Optional[int] = None
    status: OrderStatus = OrderStatus.PENDING

    # Users behind the parties, for notifications
    student_user_id: Optional[int] = None
    vendor_user_id: Optional[int] = None
    rider_user_id: Optional[int] = None

    subtotal: Decimal
    delivery_fee: Decimal
    service_fee: Decimal
    total_amount: Decimal
    commission_amount: Decimal
    vendor_earnings: Decimal
    rider_earnings: Decimal

    delivery_address: str
    delivery_lat: float = 0.0
    delivery_lng: float = 0.0
    delivery_block: str = ""
    delivery_dorm: str = ""
    customer_phone: str = ""
    customer_id_number: str = ""
    special_instructions: str = ""

    confirmed_at: Optional[datetime] = None
    prepared_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: str = ""

    items: List[OrderItem] = []
    payment: Optional[Payment] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_assigned(self) -> bool:
        return self.assigned_rider_id is not None

class OrderItemRequest(BaseModel):
    menu_item_id: int
    quantity: int = Field(ge=1)
    special_instructions: str = ""

class CreateOrderRequest(BaseModel):
    """Order placement request as received from a student"""
    vendor_id: int
    items: List[OrderItemRequest] = Field(min_length=1)
    delivery_address: str = Field(min_length=1)
    delivery_lat: float = Field(default=0.0, ge=-90, le=90)
    delivery_lng: float = Field(default=0.0, ge=-180, le=180)
    delivery_block: str = Field(min_length=1)
    delivery_dorm: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    customer_id_number: str = Field(min_length=1)
    special_instructions: str = ""
    payment_method: PaymentMethod

    @field_validator("delivery_address", "delivery_block", "delivery_dorm",
                     "customer_phone", "customer_id_number")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

class TrackingEvent(BaseModel):
    status: OrderStatus
    timestamp: datetime
    note: str = ""

class TrackingInfo(BaseModel):
    order_number: str
    status: OrderStatus
    assigned_rider_id: Optional[int] = None
    delivery_block: str = ""
    delivery_dorm: str = ""
    timeline: List[TrackingEvent] = []
