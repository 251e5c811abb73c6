"""Bot initialization and runner."""

import asyncio
import logging
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from swapchat.bot.handlers import setup_routers
from swapchat.bot.sessions import ChatSessionRegistry
from swapchat.config import Settings, get_settings
from swapchat.logging_config import setup_logging
from swapchat.notifications.telegram import TelegramNotifier
from swapchat.orders.database import Database, close_db, init_db
from swapchat.services.factory import WalletFactory

logger = logging.getLogger(__name__)


def require_wallet_support(settings: Settings, wallet_factory: Optional[WalletFactory]) -> None:
    """Live mode has no built-in wallet; a provider factory must be supplied.

    Raises:
        ValueError: If DRY_RUN is off and no wallet factory is given
    """
    if not settings.dry_run and wallet_factory is None:
        raise ValueError(
            "DRY_RUN=false needs a wallet provider factory; "
            "set DRY_RUN=true or pass wallet_factory to run_bot()"
        )


def create_bot(
    database: Database,
    registry: Optional[ChatSessionRegistry] = None,
    wallet_factory: Optional[WalletFactory] = None,
) -> tuple[Bot, Dispatcher, ChatSessionRegistry]:
    """Create bot, dispatcher and the chat session registry."""
    settings = get_settings()

    if not settings.telegram_bot_token:
        raise ValueError("TELEGRAM_BOT_TOKEN is not set")
    if registry is None:
        require_wallet_support(settings, wallet_factory)

    # No default parse_mode - each send decides
    bot = Bot(token=settings.telegram_bot_token)

    if registry is None:
        registry = ChatSessionRegistry(
            settings, database, TelegramNotifier(bot), wallet_factory=wallet_factory
        )

    # Handlers receive the registry through workflow data
    dp = Dispatcher(storage=MemoryStorage(), registry=registry)
    dp.include_router(setup_routers())

    return bot, dp, registry


async def run_bot(wallet_factory: Optional[WalletFactory] = None) -> None:
    """Run the bot in polling mode."""
    settings = get_settings()
    setup_logging(settings.debug)

    try:
        require_wallet_support(settings, wallet_factory)
    except ValueError as e:
        logger.error(f"Cannot start bot: {e}")
        raise

    logger.info("Starting Prophet Swap bot...")
    logger.info(f"Settings: {settings.get_safe_dict()}")
    if settings.dry_run:
        logger.warning("DRY_RUN enabled: wallets and orders are simulated")

    database = await init_db()
    bot, dp, registry = create_bot(database, wallet_factory=wallet_factory)

    try:
        await registry.restore()
        # Delete webhook if any and start polling
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("Starting polling...")
        await dp.start_polling(bot)
    finally:
        await registry.close()
        await bot.session.close()
        await close_db()


def main() -> None:
    """Entry point for bot-only mode."""
    asyncio.run(run_bot())


if __name__ == "__main__":
    main()
