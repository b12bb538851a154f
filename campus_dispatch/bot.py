# campus_dispatch/bot.py
import asyncio
import logging
from typing import Optional
from telegram.ext import Application
from .config import Config, PlatformConfig
from .database import ActiveOrderCache, Database, create_geo_index
from .database.repositories import (
    OrderRepository,
    RiderRepository,
    StudentRepository,
    UserRepository,
    VendorRepository,
)
from .handlers import (
    AdminHandler,
    CallbackHandler,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    OrderHandler,
    RiderHandler,
    filters
)
from .services import (
    NotificationService,
    OrderService,
    OrderStateMachine,
    RiderDispatcher,
    RiderService,
)

class Services:
    """Wires repositories and services around one database"""

    def __init__(self, db: Database, platform: PlatformConfig, bot=None):
        self.db = db
        self.platform = platform
        self.users = UserRepository(db)
        order_repo = OrderRepository(db)
        rider_repo = RiderRepository(db)
        vendor_repo = VendorRepository(db)
        student_repo = StudentRepository(db)

        self.geo_index = create_geo_index(Config.GEO_INDEX_BACKEND, db)
        self.cache = ActiveOrderCache(platform.active_order_ttl_minutes * 60)
        self.notifications = NotificationService(self.users, bot, Config.ADMIN_IDS)
        self.riders = RiderService(rider_repo, order_repo, self.geo_index)
        self.dispatcher = RiderDispatcher(
            order_repo, self.riders, self.geo_index, self.notifications, self.cache, platform
        )
        self.state_machine = OrderStateMachine(
            order_repo, vendor_repo, student_repo, rider_repo, self.riders,
            self.notifications, self.cache, self.dispatcher
        )
        self.orders = OrderService(
            order_repo, vendor_repo, rider_repo, self.notifications,
            self.state_machine, self.cache, platform
        )


class DispatchBot:
    def __init__(self):
        """Build the bot application and its services"""
        self.logger = logging.getLogger(__name__)
        self.application = Application.builder().token(Config.TELEGRAM_TOKEN).build()
        self.db = Database(Config.DATABASE_URL)
        self.services = Services(self.db, PlatformConfig.from_config(), self.application.bot)
        self._stop: Optional[asyncio.Event] = None
        self.setup_handlers()

    def setup_handlers(self):
        """Register the bot handlers"""
        riders = RiderHandler(self.services)
        orders = OrderHandler(self.services)
        admin = AdminHandler(self.services)
        callbacks = CallbackHandler(self.services)

        # Rider commands
        self.application.add_handler(CommandHandler("rider", riders.menu))
        self.application.add_handler(CommandHandler("online", riders.go_online))
        self.application.add_handler(CommandHandler("offline", riders.go_offline))
        self.application.add_handler(CommandHandler("available", riders.available_orders))
        self.application.add_handler(CommandHandler("deliveries", riders.assigned_orders))
        self.application.add_handler(CommandHandler("claim", riders.claim))
        self.application.add_handler(CommandHandler("reject", riders.reject))
        self.application.add_handler(CommandHandler("pickup", riders.pickup))
        self.application.add_handler(CommandHandler("deliver", riders.deliver))
        self.application.add_handler(CommandHandler("earnings", riders.earnings))
        self.application.add_handler(MessageHandler(filters.LOCATION, riders.location))

        # Order commands
        self.application.add_handler(CommandHandler("order", orders.show))
        self.application.add_handler(CommandHandler("orders", orders.vendor_orders))
        self.application.add_handler(CommandHandler("confirm", orders.confirm))
        self.application.add_handler(CommandHandler("prepare", orders.prepare))
        self.application.add_handler(CommandHandler("ready", orders.ready))
        self.application.add_handler(CommandHandler("decline", orders.decline))
        self.application.add_handler(CommandHandler("cancel", orders.cancel))
        self.application.add_handler(CommandHandler("track", orders.track))
        self.application.add_handler(CommandHandler("rate", orders.rate))

        # Admin commands
        self.application.add_handler(CommandHandler("assign", admin.assign))
        self.application.add_handler(CommandHandler("dispatch", admin.dispatch))
        self.application.add_handler(CommandHandler("setstatus", admin.set_status))

        # Inline buttons
        self.application.add_handler(CallbackQueryHandler(callbacks.handle_callback))

    async def start(self):
        """Connect the database and poll until stopped"""
        await self.db.connect()
        self._stop = asyncio.Event()
        try:
            async with self.application:
                await self.application.start()
                await self.application.updater.start_polling()
                self.logger.info("Bot is polling")
                await self._stop.wait()
                await self.application.updater.stop()
                await self.application.stop()
        finally:
            await self.db.close()

    def stop(self):
        if self._stop:
            self._stop.set()
