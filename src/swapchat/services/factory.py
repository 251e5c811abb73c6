"""Factories for backends, wallets and chat sessions.

Dry-run mode wires the simulated wallet and backend; live mode talks to
the real backend and needs a wallet provider from the caller.
"""

import logging
from typing import Callable, Optional

from swapchat.config import Settings
from swapchat.events import EventBus
from swapchat.orders.database import Database
from swapchat.orders.store import OrderStore, SqlKeyValueStore
from swapchat.services.backend import OrderBackend, ProphetBackendClient
from swapchat.services.token_service import WalletTokenService
from swapchat.services.wallet import SimulatedWallet, WalletProvider
from swapchat.session import SessionContext

logger = logging.getLogger(__name__)

WalletFactory = Callable[[str], WalletProvider]


def create_backend(settings: Settings) -> OrderBackend:
    """Create the order backend for the configured mode."""
    if settings.dry_run:
        from swapchat.services.dry_run import DryRunBackend

        logger.info("DRY_RUN enabled: using simulated backend")
        return DryRunBackend(chain_decimal=settings.base_currency_decimals)

    return ProphetBackendClient(
        base_url=settings.backend_url,
        base_currency=settings.base_currency,
        timeout=settings.backend_timeout,
    )


def create_wallet(session_id: str, settings: Settings) -> WalletProvider:
    """Create the wallet for a session in dry-run mode.

    Raises:
        ValueError: In live mode, where wallets come from a WalletFactory
    """
    if not settings.dry_run:
        raise ValueError("Live mode requires a wallet provider factory")
    return SimulatedWallet(
        owner=session_id,
        base_currency=settings.base_currency,
        decimals=settings.base_currency_decimals,
    )


def create_session(
    session_id: str,
    settings: Settings,
    bus: EventBus,
    database: Database,
    backend: Optional[OrderBackend] = None,
    wallet_factory: Optional[WalletFactory] = None,
) -> SessionContext:
    """Build a SessionContext whose orders live in the `session_id` namespace."""
    backend = backend or create_backend(settings)
    wallet = wallet_factory(session_id) if wallet_factory else create_wallet(session_id, settings)
    orders = OrderStore(SqlKeyValueStore(database, namespace=session_id))
    return SessionContext(
        session_id=session_id,
        settings=settings,
        bus=bus,
        wallet=wallet,
        token_service=WalletTokenService(wallet, backend, settings),
        orders=orders,
    )
