"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["DRY_RUN"] = "true"
os.environ["DEBUG"] = "false"

from swapchat.config import Settings
from swapchat.events import EventBus, EventKind
from swapchat.messages import MessageData
from swapchat.orders.database import Database
from swapchat.orders.store import MemoryKeyValueStore, OrderStore
from swapchat.services.base import PriceQuote, SwapResult, Token, TokenService
from swapchat.services.wallet import SimulatedWallet
from swapchat.session import SessionContext


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(_env_file=None)


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """In-memory database with all tables created."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def messages(bus: EventBus) -> list[MessageData]:
    """Every message and error message published on the bus, in order."""
    received: list[MessageData] = []
    bus.subscribe(EventKind.MESSAGE, lambda event: received.append(event.message))
    bus.subscribe(EventKind.ERROR, lambda event: received.append(event.message))
    return received


@pytest.fixture
def kv_data() -> dict[str, str]:
    """Backing dict of the memory store; share it to simulate a restart."""
    return {}


@pytest.fixture
def order_store(kv_data: dict[str, str]) -> OrderStore:
    return OrderStore(MemoryKeyValueStore(kv_data))


@pytest.fixture
def token_service() -> AsyncMock:
    """Token service mock holding KAS, PINTL and NACHO."""
    service = AsyncMock(spec=TokenService)
    service.get_tokens.return_value = [
        Token(symbol="KAS", balance="1000"),
        Token(symbol="PINTL", balance="500"),
        Token(symbol="NACHO", balance="750"),
    ]
    service.get_price_quote.return_value = PriceQuote(
        from_amount=Decimal("10"),
        to_amount=Decimal("100"),
        exchange_rate=Decimal("10"),
        fee=Decimal("0.5"),
        slippage="1",
        chain_decimal=8,
        price_impact=Decimal("0.1"),
    )
    service.execute_swap.return_value = SwapResult(success=True, tx_hash="h1", order_id="o1")
    service.execute_buy.return_value = SwapResult(success=True, tx_hash="h1", order_id="o1")
    service.check_order_status.return_value = "pending"
    return service


@pytest.fixture
def session(
    settings: Settings,
    bus: EventBus,
    token_service: AsyncMock,
    order_store: OrderStore,
    messages: list[MessageData],
) -> SessionContext:
    """Session for chat "chat-1" with a connected simulated wallet."""
    return SessionContext(
        session_id="chat-1",
        settings=settings,
        bus=bus,
        wallet=SimulatedWallet("chat-1", connected=True),
        token_service=token_service,
        orders=order_store,
    )
