# campus_dispatch/models/notification.py
from enum import Enum
from typing import Optional
from pydantic import BaseModel

class NotificationType(str, Enum):
    ORDER_PLACED = "order_placed"
    ORDER_RECEIVED = "order_received"
    ORDER_UPDATE = "order_update"
    RIDER_ASSIGNED = "rider_assigned"
    ADMIN = "admin_notification"

class Notification(BaseModel):
    """Persisted copy of every message sent to a user"""
    user_id: int
    title: str
    message: str
    type: NotificationType
    reference_id: Optional[str] = None
    is_read: bool = False
