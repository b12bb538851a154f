# campus_dispatch/handlers/callback_handler.py
from telegram import Update
from telegram.ext import ContextTypes
from .base_handler import BaseHandler
from .order_handlers import OrderHandler
from .rider_handlers import RiderHandler
from ..models.order import OrderStatus

class CallbackHandler(BaseHandler):
    """Inline button dispatch"""

    def __init__(self, services):
        super().__init__(services)
        self.orders = OrderHandler(services)
        self.riders = RiderHandler(services)

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Route every callback query to its handler"""
        query = update.callback_query
        data = query.data

        if data == "rider_toggle":
            await self.riders.toggle(update, context)
        elif data == "rider_available":
            await self.riders.available_orders(update, context)
        elif data == "rider_assigned":
            await self.riders.assigned_orders(update, context)
        elif data == "rider_earnings":
            await self.riders.earnings(update, context)
        elif data.startswith("order_"):
            await self.handle_order_callback(update, data)
        else:
            await query.answer("⚠️ Unknown action")

    async def handle_order_callback(self, update: Update, data: str):
        """order_<action>[_<status>]_<order_id>"""
        action_part, _, order_id = data[len("order_"):].rpartition("_")
        if not order_id.isdigit():
            await update.callback_query.answer("⚠️ Unknown action")
            return
        order_id = int(order_id)

        if action_part == "claim":
            await self.riders.claim_order(update, order_id)
        elif action_part == "reject":
            await self.riders.reject_order(update, order_id)
        elif action_part == "track":
            await self.orders.track_order(update, order_id)
        elif action_part.startswith("set_"):
            try:
                target = OrderStatus(action_part[len("set_"):])
            except ValueError:
                await update.callback_query.answer("⚠️ Unknown status")
                return
            await self.orders.set_status(update, order_id, target)
        else:
            await update.callback_query.answer("⚠️ Unknown action")
