# campus_dispatch/models/menu_item.py
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict

class MenuItem(BaseModel):
    """Catalog entry as read at order time"""
    id: int
    vendor_id: int
    name: str
    price: Decimal
    discount_price: Optional[Decimal] = None
    is_available: bool = True

    model_config = ConfigDict(from_attributes=True)

    @property
    def effective_price(self) -> Decimal:
        if self.discount_price is not None and self.discount_price > 0:
            return self.discount_price
        return self.price
