# campus_dispatch/services/fee_calculator.py
from decimal import Decimal
from typing import List, Sequence, Tuple
from pydantic import BaseModel
from ..config import PlatformConfig
from ..exceptions import BelowMinimumOrderError
from ..models.menu_item import MenuItem
from ..models.order import OrderItem
from ..models.vendor import Vendor
from ..utils.formatters import format_price

class FeeBreakdown(BaseModel):
    """Money split of one order; nothing here is rounded"""
    items: List[OrderItem]
    subtotal: Decimal
    delivery_fee: Decimal
    service_fee: Decimal
    commission: Decimal
    vendor_earnings: Decimal
    rider_earnings: Decimal
    total: Decimal

def compute_fees(lines: Sequence[Tuple[MenuItem, int]], vendor: Vendor,
                 platform: PlatformConfig, instructions: Sequence[str] = ()) -> FeeBreakdown:
    """Price the lines and split the money between platform, vendor and rider.

    ``lines`` pairs each catalog item with the ordered quantity. The unit
    price is snapshotted into the returned ``OrderItem`` so later catalog
    changes never touch the order.
    """
    items: List[OrderItem] = []
    subtotal = Decimal(0)

    for index, (menu_item, quantity) in enumerate(lines):
        unit_price = menu_item.effective_price
        line_subtotal = unit_price * quantity
        subtotal += line_subtotal
        items.append(OrderItem(
            menu_item_id=menu_item.id,
            name=menu_item.name,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=line_subtotal,
            special_instructions=instructions[index] if index < len(instructions) else ""
        ))

    if subtotal < vendor.minimum_order:
        raise BelowMinimumOrderError(
            f"minimum order amount is {format_price(vendor.minimum_order)}"
        )

    delivery_fee = platform.delivery_fee
    service_fee = subtotal * platform.service_fee_rate
    commission_rate = vendor.commission_rate
    if commission_rate is None:
        commission_rate = platform.default_commission_rate
    commission = subtotal * commission_rate

    return FeeBreakdown(
        items=items,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        service_fee=service_fee,
        commission=commission,
        vendor_earnings=subtotal - commission,
        rider_earnings=delivery_fee * platform.rider_earnings_rate,
        total=subtotal + delivery_fee + service_fee
    )
