# campus_dispatch/utils/keyboards.py
from typing import List
from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from ..models.order import Order, OrderStatus
from ..models.user import Role

# Next status a vendor drives the order to, with the button label
_VENDOR_STEPS = {
    OrderStatus.PENDING: ("✅ Accept", "confirmed"),
    OrderStatus.CONFIRMED: ("👨‍🍳 Start preparing", "preparing"),
    OrderStatus.PREPARING: ("📦 Ready for pickup", "ready"),
}

class Keyboards:
    @staticmethod
    def rider_menu(is_available: bool) -> InlineKeyboardMarkup:
        """Rider main menu"""
        toggle = "🔴 Go offline" if is_available else "🟢 Go online"
        keyboard = [
            [InlineKeyboardButton(toggle, callback_data="rider_toggle")],
            [InlineKeyboardButton("📋 Available orders", callback_data="rider_available")],
            [InlineKeyboardButton("🛵 My deliveries", callback_data="rider_assigned")],
            [InlineKeyboardButton("💵 Earnings", callback_data="rider_earnings")]
        ]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def available_orders(orders: List[Order]) -> InlineKeyboardMarkup:
        """One claim button per ready order"""
        keyboard = [
            [InlineKeyboardButton(
                f"🛵 #{order.order_number} → {order.delivery_block}",
                callback_data=f"order_claim_{order.id}"
            )]
            for order in orders
        ]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def order_actions(order: Order, role: Role) -> InlineKeyboardMarkup:
        """Buttons for what ``role`` can do next with ``order``"""
        keyboard = []
        if role == Role.VENDOR and order.status in _VENDOR_STEPS:
            label, target = _VENDOR_STEPS[order.status]
            keyboard.append([InlineKeyboardButton(label, callback_data=f"order_set_{target}_{order.id}")])
        elif role == Role.RIDER:
            if order.status == OrderStatus.READY and not order.is_assigned:
                keyboard.append([InlineKeyboardButton("🛵 Claim", callback_data=f"order_claim_{order.id}")])
            elif order.status == OrderStatus.READY:
                keyboard.append([
                    InlineKeyboardButton("📦 Picked up", callback_data=f"order_set_picked_up_{order.id}"),
                    InlineKeyboardButton("↩️ Hand back", callback_data=f"order_reject_{order.id}")
                ])
            elif order.status == OrderStatus.PICKED_UP:
                keyboard.append([InlineKeyboardButton("🏁 Delivered", callback_data=f"order_set_delivered_{order.id}")])
            elif order.status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING):
                keyboard.append([InlineKeyboardButton("↩️ Hand back", callback_data=f"order_reject_{order.id}")])
        keyboard.append([InlineKeyboardButton("📍 Track", callback_data=f"order_track_{order.id}")])
        return InlineKeyboardMarkup(keyboard)
