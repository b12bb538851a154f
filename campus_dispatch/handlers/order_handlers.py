# campus_dispatch/handlers/order_handlers.py
from telegram import Update
from telegram.ext import ContextTypes
from .base_handler import BaseHandler
from ..exceptions import DispatchError
from ..models.order import OrderStatus
from ..models.user import Role

class OrderHandler(BaseHandler):
    """Order commands for vendors, students and admins"""

    async def show(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /order <order_id>"""
        args = self.int_args(context, 1)
        if not args:
            await self.reply(update, "Usage: /order <order_id>")
            return
        actor = await self.require_actor(update)
        if not actor:
            return
        try:
            order = await self.services.orders.get_order(args[0], actor)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(
            update,
            self.messages.format_order(order),
            self.keyboards.order_actions(order, actor.role)
        )

    async def confirm(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /confirm <order_id>"""
        await self._advance(update, context, OrderStatus.CONFIRMED, "/confirm")

    async def prepare(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /prepare <order_id>"""
        await self._advance(update, context, OrderStatus.PREPARING, "/prepare")

    async def ready(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /ready <order_id>"""
        await self._advance(update, context, OrderStatus.READY, "/ready")

    async def decline(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /decline <order_id> <reason>"""
        args = self.int_args(context, 1)
        reason = self.text_after(context, 1)
        if not args or not reason:
            await self.reply(update, "Usage: /decline <order_id> <reason>")
            return
        await self.set_status(update, args[0], OrderStatus.REJECTED, reason)

    async def cancel(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /cancel <order_id> <reason>"""
        args = self.int_args(context, 1)
        reason = self.text_after(context, 1)
        if not args or not reason:
            await self.reply(update, "Usage: /cancel <order_id> <reason>")
            return
        actor = await self.require_actor(update, Role.STUDENT, Role.VENDOR, Role.ADMIN)
        if not actor:
            return
        try:
            order = await self.services.orders.cancel_order(args[0], actor, reason)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(update, f"❌ Order #{order.order_number} cancelled.")

    async def track(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /track <order_id>"""
        args = self.int_args(context, 1)
        if not args:
            await self.reply(update, "Usage: /track <order_id>")
            return
        await self.track_order(update, args[0])

    async def track_order(self, update: Update, order_id: int):
        actor = await self.require_actor(update)
        if not actor:
            return
        try:
            tracking = await self.services.orders.track_order(order_id, actor)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(update, self.messages.format_tracking(tracking))

    async def rate(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /rate <order_id> <1-5> [comment]"""
        args = self.int_args(context, 2)
        if not args:
            await self.reply(update, "Usage: /rate <order_id> <1-5> [comment]")
            return
        actor = await self.require_actor(update, Role.STUDENT)
        if not actor:
            return
        try:
            await self.services.orders.rate_order(
                actor.id, args[0], args[1], self.text_after(context, 2)
            )
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(update, "⭐️ Thanks for your rating!")

    async def vendor_orders(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /orders [status]"""
        actor = await self.require_actor(update, Role.VENDOR, Role.STUDENT)
        if not actor:
            return
        try:
            if actor.role == Role.VENDOR:
                status = OrderStatus(context.args[0]) if context.args else None
                orders, total = await self.services.orders.get_vendor_orders(actor.id, status)
            else:
                orders, total = await self.services.orders.get_student_orders(actor.id)
        except ValueError:
            await self.reply(update, "Unknown status. Use one of: " +
                             ", ".join(status.value for status in OrderStatus))
            return
        except DispatchError as e:
            await self.reply_error(update, e)
            return

        if not orders:
            await self.reply(update, "No orders found.")
            return
        await self.reply(update, f"📋 {total} order(s), latest first:")
        for order in orders:
            await update.effective_chat.send_message(
                self.messages.format_order(order),
                reply_markup=self.keyboards.order_actions(order, actor.role)
            )

    async def set_status(self, update: Update, order_id: int, target: OrderStatus,
                         reason: str = ""):
        actor = await self.require_actor(update)
        if not actor:
            return
        try:
            order = await self.services.state_machine.transition(order_id, actor, target, reason)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(
            update,
            f"✅ Order #{order.order_number} is now {order.status.value}.",
            self.keyboards.order_actions(order, actor.role)
        )

    async def _advance(self, update: Update, context: ContextTypes.DEFAULT_TYPE,
                       target: OrderStatus, command: str):
        args = self.int_args(context, 1)
        if not args:
            await self.reply(update, f"Usage: {command} <order_id>")
            return
        await self.set_status(update, args[0], target)
