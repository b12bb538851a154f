# campus_dispatch/handlers/base_handler.py
import logging
from typing import List, Optional
from telegram import Update
from telegram.ext import ContextTypes
from ..config import Config
from ..exceptions import DispatchError
from ..models.actor import Actor
from ..models.user import Role
from ..utils.keyboards import Keyboards
from ..utils.messages import Messages

class BaseHandler:
    """Base class for the chat handlers"""
    def __init__(self, services):
        self.services = services
        self.keyboards = Keyboards()
        self.messages = Messages()
        self.logger = logging.getLogger(self.__class__.__module__)

    async def resolve_actor(self, update: Update) -> Optional[Actor]:
        """Map the chat to an acting profile; ADMIN_IDS chats always act as admin"""
        chat_id = update.effective_chat.id
        actor = await self.services.users.resolve_actor(chat_id)
        if actor is None and self.is_admin(chat_id):
            return Actor(role=Role.ADMIN, id=chat_id)
        return actor

    async def require_actor(self, update: Update, *roles: Role) -> Optional[Actor]:
        """Resolve the actor and check its role, replying when it does not fit"""
        actor = await self.resolve_actor(update)
        if actor is None:
            await self.reply(update, "⛔️ This chat is not linked to an account.")
            return None
        if roles and actor.role not in roles:
            await self.reply(update, "⛔️ This command is not available for your role.")
            return None
        return actor

    async def reply(self, update: Update, text: str, reply_markup=None):
        if update.callback_query:
            await update.callback_query.answer()
            await update.callback_query.edit_message_text(text, reply_markup=reply_markup)
        else:
            await update.effective_message.reply_text(text, reply_markup=reply_markup)

    async def reply_error(self, update: Update, error: DispatchError):
        self.logger.info(f"Request from chat {update.effective_chat.id} refused: {error.kind}")
        await self.reply(update, f"❌ {error.message}")

    @staticmethod
    def int_args(context: ContextTypes.DEFAULT_TYPE, count: int) -> Optional[List[int]]:
        """First ``count`` command arguments as ints, or None"""
        args = context.args or []
        if len(args) < count:
            return None
        try:
            return [int(arg) for arg in args[:count]]
        except ValueError:
            return None

    @staticmethod
    def text_after(context: ContextTypes.DEFAULT_TYPE, skip: int) -> str:
        return " ".join((context.args or [])[skip:]).strip()

    def is_admin(self, chat_id: int) -> bool:
        """Check admin access"""
        return chat_id in Config.ADMIN_IDS
