"""Per-chat session context.

A SessionContext bundles everything one chat needs: settings, the event
bus, the wallet, the token service and the order store. It replaces
process-wide singletons, so two chats never share flow or wallet state.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from swapchat.config import Settings
from swapchat.events import EventBus, EventKind, MessageEvent, Subscription, WalletStateEvent
from swapchat.messages import MessageData
from swapchat.orders.store import OrderStore
from swapchat.services.base import TokenService
from swapchat.services.wallet import NativeBalance, TokenBalance, WalletError, WalletProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletState:
    """Snapshot of the wallet connection as shown to the user."""

    account: Optional[str] = None
    is_connected: bool = False
    balance: Optional[NativeBalance] = None
    token_balances: tuple[TokenBalance, ...] = ()
    is_loading: bool = False
    error: Optional[str] = None


class SessionContext:
    """Collaborators and wallet state for one chat session."""

    def __init__(
        self,
        session_id: str,
        settings: Settings,
        bus: EventBus,
        wallet: WalletProvider,
        token_service: TokenService,
        orders: OrderStore,
    ):
        self.session_id = session_id
        self.settings = settings
        self.bus = bus
        self.wallet = wallet
        self.token_service = token_service
        self.orders = orders
        self.attached = False
        self._wallet_state = WalletState()
        self._subscriptions: list[Subscription] = []

    # ======================
    # Events
    # ======================

    async def emit(self, message: MessageData) -> MessageData:
        await self.bus.publish(EventKind.MESSAGE, MessageEvent(self.session_id, message))
        return message

    async def emit_error(self, message: MessageData) -> MessageData:
        await self.bus.publish(EventKind.ERROR, MessageEvent(self.session_id, message))
        return message

    def subscribe(self, kind: EventKind, handler: Callable[[Any], Any]) -> Subscription:
        """Subscribe to events of this session only. Dropped on detach."""

        def scoped(event: Any) -> Any:
            if getattr(event, "session_id", None) == self.session_id:
                return handler(event)
            return None

        subscription = self.bus.subscribe(kind, scoped)
        self._subscriptions.append(subscription)
        return subscription

    # ======================
    # Wallet
    # ======================

    @property
    def wallet_state(self) -> WalletState:
        return self._wallet_state

    async def _set_wallet_state(self, **changes: Any) -> None:
        self._wallet_state = replace(self._wallet_state, **changes)
        await self.bus.publish(
            EventKind.WALLET_STATE, WalletStateEvent(self.session_id, self._wallet_state)
        )

    async def connect_wallet(self) -> WalletState:
        """Ask the wallet for an account and load balances.

        Raises:
            WalletError: If the wallet refuses the connection
        """
        await self._set_wallet_state(is_loading=True, error=None)
        try:
            accounts = await self.wallet.request_accounts()
            if not accounts:
                raise WalletError("No accounts returned by the wallet")
        except WalletError as e:
            await self._set_wallet_state(is_loading=False, is_connected=False, error=str(e))
            raise

        await self._set_wallet_state(account=accounts[0], is_connected=True)
        logger.info(f"Session {self.session_id} connected wallet {accounts[0]}")
        return await self.refresh_balances()

    async def refresh_balances(self) -> WalletState:
        try:
            balance = await self.wallet.get_balance()
            token_balances = tuple(await self.wallet.get_token_balances())
        except WalletError as e:
            logger.error(f"Error fetching balances for session {self.session_id}: {e}")
            await self._set_wallet_state(is_loading=False, error=str(e))
            return self._wallet_state

        await self._set_wallet_state(
            balance=balance, token_balances=token_balances, is_loading=False, error=None
        )
        return self._wallet_state

    async def restore_connection(self) -> bool:
        """Pick up an existing wallet connection without prompting."""
        account = await self.wallet.current_account()
        if account is None:
            return False
        await self._set_wallet_state(account=account, is_connected=True)
        await self.refresh_balances()
        return True

    async def disconnect_wallet(self) -> None:
        try:
            await self.wallet.disconnect()
        except WalletError as e:
            logger.warning(f"Wallet disconnect failed for session {self.session_id}: {e}")
        self._wallet_state = WalletState()
        await self.bus.publish(
            EventKind.WALLET_STATE, WalletStateEvent(self.session_id, self._wallet_state)
        )

    # ======================
    # Lifecycle
    # ======================

    async def attach(self) -> None:
        if self.attached:
            return
        self.attached = True
        await self.restore_connection()

    async def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self.attached = False
