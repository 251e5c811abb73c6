"""Database engine and session management for the order store."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import make_url
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from swapchat.config import get_settings
from swapchat.orders.models import Base

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Convert sqlite:/// to sqlite+aiosqlite:/// if needed."""
    if url.startswith("sqlite:///") and "aiosqlite" not in url:
        return url.replace("sqlite:///", "sqlite+aiosqlite:///")
    return url


class Database:
    """Owns an async engine and its session factory."""

    def __init__(self, url: str, echo: bool = False):
        self.url = normalize_url(url)
        engine_kwargs = {}
        if ":memory:" in self.url:
            # one shared connection, or every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool
        self._engine: AsyncEngine = create_async_engine(self.url, echo=echo, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create all tables."""
        url = make_url(self.url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()


_database: Optional[Database] = None


def get_database() -> Database:
    """Get or create the process database from settings."""
    global _database
    if _database is None:
        settings = get_settings()
        _database = Database(
            settings.database_url,
            echo=settings.debug and not settings.is_production,
        )
    return _database


async def init_db() -> Database:
    """Initialize the database by creating all tables."""
    database = get_database()
    await database.create_all()
    logger.info(f"Order store ready: {get_settings()._redact_url(database.url)}")
    return database


async def close_db() -> None:
    """Close database connections."""
    global _database
    if _database is not None:
        await _database.dispose()
        _database = None
