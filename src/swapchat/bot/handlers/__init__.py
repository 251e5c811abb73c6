"""Bot handlers module."""

from aiogram import Router

from swapchat.bot.handlers import start, swap


def setup_routers() -> Router:
    """Create and configure all routers."""
    main_router = Router()

    # start first so /start and /help win over the catch-all text handler
    main_router.include_router(start.router)
    main_router.include_router(swap.router)

    return main_router
