# campus_dispatch/handlers/__init__.py
"""Telegram handlers"""
from telegram.ext import (
    CommandHandler,
    MessageHandler,
    CallbackQueryHandler,
    filters
)
from .admin_handlers import AdminHandler
from .callback_handler import CallbackHandler
from .order_handlers import OrderHandler
from .rider_handlers import RiderHandler

__all__ = [
    'AdminHandler',
    'CallbackHandler',
    'OrderHandler',
    'RiderHandler',
    'CommandHandler',
    'MessageHandler',
    'CallbackQueryHandler',
    'filters'
]
