# campus_dispatch/utils/messages.py
from ..models.order import Order, OrderStatus, TrackingInfo
from ..models.rider import RiderEarnings
from ..utils.formatters import format_price, format_datetime

class Messages:
    @staticmethod
    def format_order(order: Order) -> str:
        """Render an order for chat"""
        status_emoji = {
            OrderStatus.PENDING: "⏳",
            OrderStatus.CONFIRMED: "✅",
            OrderStatus.PREPARING: "👨‍🍳",
            OrderStatus.READY: "📦",
            OrderStatus.PICKED_UP: "🛵",
            OrderStatus.DELIVERED: "🏁",
            OrderStatus.CANCELLED: "❌",
            OrderStatus.REJECTED: "🚫"
        }

        items_text = "\n".join([
            f"- {item.quantity}x {item.name or item.menu_item_id}: {format_price(item.unit_price)}"
            for item in order.items
        ])

        return (
            f"🛍 Order #{order.order_number} (id {order.id})\n"
            f"------------------\n"
            f"{items_text}\n"
            f"------------------\n"
            f"Subtotal: {format_price(order.subtotal)}\n"
            f"Delivery: {format_price(order.delivery_fee)}\n"
            f"Service: {format_price(order.service_fee)}\n"
            f"💰 Total: {format_price(order.total_amount)}\n"
            f"📍 {order.delivery_block} / {order.delivery_dorm}\n"
            f"📊 Status: {status_emoji[order.status]} {order.status.value}\n"
            f"🕒 Placed: {format_datetime(order.created_at)}\n"
        )

    @staticmethod
    def format_tracking(tracking: TrackingInfo) -> str:
        lines = [f"📍 Tracking #{tracking.order_number}: {tracking.status.value}"]
        for event in tracking.timeline:
            note = f" ({event.note})" if event.note else ""
            lines.append(f"• {format_datetime(event.timestamp)} {event.status.value}{note}")
        return "\n".join(lines)

    @staticmethod
    def format_earnings(earnings: RiderEarnings) -> str:
        return (
            f"💵 Earnings {earnings.start_date} → {earnings.end_date}\n"
            f"Deliveries: {earnings.total_deliveries}\n"
            f"Earned: {format_price(earnings.total_earnings)}\n"
            f"Per delivery: {format_price(earnings.average_per_delivery)}\n"
            f"Balance: {format_price(earnings.current_balance)}"
        )
