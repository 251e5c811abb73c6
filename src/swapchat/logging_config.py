"""Logging setup shared by the bot and the reconciler entry points."""

import logging
from typing import Optional


def setup_logging(debug: Optional[bool] = None) -> None:
    """Configure root logging and reduce noise from libraries."""
    if debug is None:
        from swapchat.config import get_settings

        debug = get_settings().debug

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("aiogram").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
