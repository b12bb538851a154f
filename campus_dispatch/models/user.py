# campus_dispatch/models/user.py
from decimal import Decimal
from enum import Enum
from .base import TimeStampedModel

class Role(str, Enum):
    STUDENT = "student"
    VENDOR = "vendor"
    RIDER = "rider"
    ADMIN = "admin"


class Student(TimeStampedModel):
    """Requester profile with lifetime order counters"""
    id: int
    user_id: int
    total_orders: int = 0
    total_spent: Decimal = Decimal(0)
