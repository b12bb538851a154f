# campus_dispatch/models/vendor.py
from decimal import Decimal
from typing import Optional
from .base import TimeStampedModel

class Vendor(TimeStampedModel):
    """Vendor with commission settings and delivered-order counters"""
    id: int
    user_id: int
    business_name: str
    is_open: bool = False
    # None falls back to the platform default rate
    commission_rate: Optional[Decimal] = None
    minimum_order: Decimal = Decimal(0)
    latitude: float = 0.0
    longitude: float = 0.0

    # Only moved by delivered orders
    total_orders: int = 0
    total_revenue: Decimal = Decimal(0)
    total_earnings: Decimal = Decimal(0)
    current_balance: Decimal = Decimal(0)
    rating: float = 0.0
    review_count: int = 0
