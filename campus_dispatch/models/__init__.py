"""Domain models"""
from .actor import Actor, ROLE_TARGETS
from .menu_item import MenuItem
from .notification import Notification, NotificationType
from .order import (
    CreateOrderRequest,
    Order,
    OrderItem,
    OrderItemRequest,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    TERMINAL_STATUSES,
    TrackingEvent,
    TrackingInfo,
)
from .review import Review
from .rider import DailyEarnings, Rider, RiderEarnings, RiderLocation
from .user import Role, Student
from .vendor import Vendor

__all__ = [
    'Actor',
    'ROLE_TARGETS',
    'MenuItem',
    'Notification',
    'NotificationType',
    'CreateOrderRequest',
    'Order',
    'OrderItem',
    'OrderItemRequest',
    'OrderStatus',
    'Payment',
    'PaymentMethod',
    'PaymentStatus',
    'TERMINAL_STATUSES',
    'TrackingEvent',
    'TrackingInfo',
    'Review',
    'DailyEarnings',
    'Rider',
    'RiderEarnings',
    'RiderLocation',
    'Role',
    'Student',
    'Vendor',
]
