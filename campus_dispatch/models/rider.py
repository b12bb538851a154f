# campus_dispatch/models/rider.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel
from .base import TimeStampedModel

class Rider(TimeStampedModel):
    """Courier with availability flag and last known position"""
    id: int
    user_id: int
    vehicle_type: str = ""
    vehicle_number: str = ""
    is_available: bool = False
    current_latitude: float = 0.0
    current_longitude: float = 0.0
    last_location_update: Optional[datetime] = None
    total_deliveries: int = 0
    total_earnings: Decimal = Decimal(0)
    current_balance: Decimal = Decimal(0)
    rating: float = 0.0
    review_count: int = 0

class RiderLocation(BaseModel):
    """Geo index hit"""
    rider_id: int
    latitude: float
    longitude: float
    distance_km: float

class DailyEarnings(BaseModel):
    date: str
    deliveries: int = 0
    earnings: Decimal = Decimal(0)

class RiderEarnings(BaseModel):
    start_date: str
    end_date: str
    total_deliveries: int = 0
    total_earnings: Decimal = Decimal(0)
    average_per_delivery: Decimal = Decimal(0)
    daily_breakdown: List[DailyEarnings] = []
    current_balance: Decimal = Decimal(0)
