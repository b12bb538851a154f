# main.py
import asyncio
import logging
import signal
from campus_dispatch.bot import DispatchBot
from campus_dispatch.config import Config, setup_logging

async def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        Config.validate()

        # Initialize and start bot
        bot = DispatchBot()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, bot.stop)

        logger.info("Starting bot...")
        await bot.start()
    except Exception as e:
        logger.error(f"Error starting bot: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    asyncio.run(main())
