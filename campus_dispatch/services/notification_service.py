# campus_dispatch/services/notification_service.py
import logging
from typing import Iterable, Optional
from telegram import Bot
from telegram.error import TelegramError
from ..models.notification import Notification, NotificationType
from ..models.order import Order, OrderStatus

ADMIN_ALERT_STATUSES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.REJECTED,
})


class NotificationService:
    """Fire-and-forget notifications.

    Every message is stored in ``notifications`` and pushed to the user's
    linked Telegram chat when a bot is configured. Failures are logged and
    never propagate to the state change that triggered them.
    """

    def __init__(self, users, bot: Optional[Bot] = None, admin_chat_ids: Iterable[int] = ()):
        self.users = users
        self.bot = bot
        self.admin_chat_ids = list(admin_chat_ids)
        self.logger = logging.getLogger(__name__)

    async def notify(self, user_id: Optional[int], title: str, body: str,
                     category: NotificationType, reference_id: Optional[str] = None) -> None:
        """Store and push one message to one user"""
        if user_id is None:
            return
        try:
            await self.users.create_notification(Notification(
                user_id=user_id,
                title=title,
                message=body,
                type=category,
                reference_id=reference_id
            ))
            chat_id = await self.users.get_chat_id(user_id)
            if chat_id:
                await self._push(chat_id, title, body)
        except Exception as e:
            self.logger.error(f"Notifying user {user_id} failed: {e}")

    async def notify_admin(self, title: str, body: str) -> None:
        """Administrative channel: admin accounts plus the configured admin chats"""
        try:
            admin_ids = await self.users.get_admin_user_ids()
        except Exception as e:
            self.logger.error(f"Loading admin users failed: {e}")
            admin_ids = []

        for admin_id in admin_ids:
            await self.notify(admin_id, title, body, NotificationType.ADMIN)

        for chat_id in self.admin_chat_ids:
            await self._push(chat_id, title, body)

    async def notify_new_order(self, order: Order) -> None:
        reference = str(order.id)
        await self.notify(order.vendor_user_id, "New Order",
                          f"New order #{order.order_number} received",
                          NotificationType.ORDER_RECEIVED, reference)
        await self.notify(order.student_user_id, "Order Placed",
                          f"Your order #{order.order_number} has been placed successfully",
                          NotificationType.ORDER_PLACED, reference)
        await self.notify_admin("New Order Placed",
                                f"A new order #{order.order_number} has been placed")

    async def notify_order_update(self, order: Order, status: OrderStatus, reason: str = "") -> None:
        reference = str(order.id)
        suffix = f" ({reason})" if reason else ""
        await self.notify(order.student_user_id, "Order Update",
                          f"Your order #{order.order_number} is now {status.value}{suffix}",
                          NotificationType.ORDER_UPDATE, reference)
        await self.notify(order.vendor_user_id, "Order Update",
                          f"Order #{order.order_number} status: {status.value}{suffix}",
                          NotificationType.ORDER_UPDATE, reference)
        if order.assigned_rider_id is not None:
            await self.notify(order.rider_user_id, "Delivery Update",
                              f"Delivery #{order.order_number} status: {status.value}{suffix}",
                              NotificationType.ORDER_UPDATE, reference)

        if status in ADMIN_ALERT_STATUSES:
            await self.notify_admin(f"Order {status.value}",
                                    f"Order #{order.order_number} has been {status.value}{suffix}")

    async def notify_rider_assigned(self, order: Order) -> None:
        reference = str(order.id)
        await self.notify(order.rider_user_id, "New Delivery",
                          f"You have been assigned to deliver order #{order.order_number}",
                          NotificationType.RIDER_ASSIGNED, reference)
        await self.notify(order.student_user_id, "Rider Assigned",
                          f"A rider has been assigned to your order #{order.order_number}",
                          NotificationType.RIDER_ASSIGNED, reference)
        await self.notify(order.vendor_user_id, "Rider Assigned",
                          f"Rider assigned to order #{order.order_number}",
                          NotificationType.RIDER_ASSIGNED, reference)

    async def _push(self, chat_id: int, title: str, body: str) -> None:
        if self.bot is None:
            return
        try:
            await self.bot.send_message(chat_id=chat_id, text=f"🔔 {title}\n{body}")
        except TelegramError as e:
            self.logger.warning(f"Telegram push to {chat_id} failed: {e}")
