# campus_dispatch/handlers/admin_handlers.py
from telegram import Update
from telegram.ext import ContextTypes
from .base_handler import BaseHandler
from ..exceptions import DispatchError
from ..models.order import OrderStatus
from ..models.user import Role

class AdminHandler(BaseHandler):
    """Admin commands"""

    async def assign(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /assign <order_id> <rider_id>"""
        actor = await self.require_actor(update, Role.ADMIN)
        if not actor:
            return
        args = self.int_args(context, 2)
        if not args:
            await self.reply(update, "Usage: /assign <order_id> <rider_id>")
            return
        order_id, rider_id = args
        try:
            order = await self.services.dispatcher.assign_rider(order_id, rider_id)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        self.logger.info(f"Admin {actor.id} assigned rider {rider_id} to order {order_id}")
        await self.reply(
            update,
            f"✅ Rider {rider_id} assigned to order #{order.order_number} ({order.status.value})."
        )

    async def dispatch(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /dispatch <order_id>: retry auto-assignment of a ready order"""
        actor = await self.require_actor(update, Role.ADMIN)
        if not actor:
            return
        args = self.int_args(context, 1)
        if not args:
            await self.reply(update, "Usage: /dispatch <order_id>")
            return
        try:
            order = await self.services.orders.get_order(args[0], actor)
            rider_id = await self.services.dispatcher.auto_assign(order)
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(update, f"✅ Order #{order.order_number} assigned to rider {rider_id}.")

    async def set_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /setstatus <order_id> <status> [reason]"""
        actor = await self.require_actor(update, Role.ADMIN)
        if not actor:
            return
        args = self.int_args(context, 1)
        if not args or len(context.args) < 2:
            await self.reply(update, "Usage: /setstatus <order_id> <status> [reason]")
            return
        try:
            target = OrderStatus(context.args[1])
        except ValueError:
            await self.reply(update, f"Unknown status: {context.args[1]}")
            return
        try:
            order = await self.services.state_machine.transition(
                args[0], actor, target, self.text_after(context, 2)
            )
        except DispatchError as e:
            await self.reply_error(update, e)
            return
        await self.reply(update, f"✅ Order #{order.order_number} is now {order.status.value}.")
