# campus_dispatch/models/review.py
from typing import Optional
from pydantic import BaseModel, Field

class Review(BaseModel):
    order_id: int
    student_id: int
    vendor_id: int
    rider_id: Optional[int] = None
    rating: int = Field(ge=1, le=5)
    comment: str = ""
