# campus_dispatch/handlers/rider_handlers.py
from telegram import Update
from telegram.ext import ContextTypes
from .base_handler import BaseHandler
from ..exceptions import DispatchError
from ..models.order import OrderStatus
from ..models.user import Role

class RiderHandler(BaseHandler):
    """Rider commands: availability, location and deliveries"""

    async def menu(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /rider"""
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        try:
            rider = await self.services.riders.get_rider(actor.id)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        status = "🟢 online" if rider.is_available else "🔴 offline"
        await self.reply(update, f"🛵 You are {status}.", self.keyboards.rider_menu(rider.is_available))

    async def go_online(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /online"""
        await self._set_availability(update, True)

    async def go_offline(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /offline"""
        await self._set_availability(update, False)

    async def toggle(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        try:
            rider = await self.services.riders.toggle_availability(actor.id)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        status = "🟢 online" if rider.is_available else "🔴 offline"
        await self.reply(update, f"You are now {status}.", self.keyboards.rider_menu(rider.is_available))

    async def location(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Shared or live location from a rider"""
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        message = update.edited_message or update.message
        try:
            await self.services.riders.update_location(
                actor.id, message.location.latitude, message.location.longitude
            )
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        # Live location edits arrive continuously; only confirm the first share
        if update.message:
            await self.reply(update, "📍 Location updated.")

    async def available_orders(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /available"""
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        orders, total = await self.services.riders.get_available_orders()
        if not orders:
            await self.reply(update, "No orders are waiting for a rider.")
            return
        await self.reply(
            update,
            f"📋 {total} order(s) waiting for a rider:",
            self.keyboards.available_orders(orders)
        )

    async def assigned_orders(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /deliveries"""
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        orders = await self.services.riders.get_assigned_orders(actor.id)
        active = [order for order in orders if not order.is_terminal]
        if not active:
            await self.reply(update, "You have no active deliveries.")
            return
        if update.callback_query:
            await update.callback_query.answer()
        for order in active:
            await update.effective_chat.send_message(
                self.messages.format_order(order),
                reply_markup=self.keyboards.order_actions(order, Role.RIDER)
            )

    async def claim(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /claim <order_id>"""
        args = self.int_args(context, 1)
        if not args:
            await self.reply(update, "Usage: /claim <order_id>")
            return
        await self.claim_order(update, args[0])

    async def claim_order(self, update: Update, order_id: int):
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        try:
            order = await self.services.dispatcher.claim_order(actor.id, order_id)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(
            update,
            f"✅ Order #{order.order_number} is yours.\n\n{self.messages.format_order(order)}",
            self.keyboards.order_actions(order, Role.RIDER)
        )

    async def reject(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /reject <order_id>"""
        args = self.int_args(context, 1)
        if not args:
            await self.reply(update, "Usage: /reject <order_id>")
            return
        await self.reject_order(update, args[0])

    async def reject_order(self, update: Update, order_id: int):
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        try:
            await self.services.dispatcher.handle_rejection(order_id, actor.id)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(update, f"↩️ Order {order_id} handed back.")

    async def pickup(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /pickup <order_id>"""
        await self._advance(update, context, OrderStatus.PICKED_UP, "/pickup")

    async def deliver(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /deliver <order_id>"""
        await self._advance(update, context, OrderStatus.DELIVERED, "/deliver")

    async def earnings(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /earnings"""
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        try:
            earnings = await self.services.riders.get_earnings(actor.id)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(update, self.messages.format_earnings(earnings))

    async def _advance(self, update: Update, context: ContextTypes.DEFAULT_TYPE,
                       target: OrderStatus, command: str):
        args = self.int_args(context, 1)
        if not args:
            await self.reply(update, f"Usage: {command} <order_id>")
            return
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        try:
            order = await self.services.state_machine.transition(args[0], actor, target)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(update, f"✅ Order #{order.order_number} is now {order.status.value}.")

    async def _set_availability(self, update: Update, available: bool):
        actor = await self.require_actor(update, Role.RIDER)
        if not actor:
            return
        try:
            await self.services.riders.set_availability(actor.id, available)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        if available:
            await self.reply(update, "🟢 You are online. Share your location to receive orders nearby.")
        else:
            await self.reply(update, "🔴 You are offline.")
