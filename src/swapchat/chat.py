"""Chat session facade.

`SwapChat` ties a session's flow controller and order reconciliation
engine to the wallet connection and to the chat lifecycle: attach starts
polling, detach stops it and resets the flow. Presentation layers feed it
text and button presses and render what comes out of the event bus.
"""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from swapchat.events import EventKind, WalletStateEvent
from swapchat.flow.controller import SwapFlowController
from swapchat.flow.formatting import esc, fmt_amount
from swapchat.messages import MessageButtons, bot_message
from swapchat.orders.reconciler import OrderReconciliationEngine
from swapchat.services.wallet import WalletError
from swapchat.session import SessionContext

logger = logging.getLogger(__name__)


class ChatTexts(BaseModel):
    """User-facing texts that deployments may override."""

    model_config = ConfigDict(frozen=True)

    title: str = "Prophet Swap"
    connect_prompt: str = "Please connect your KASWARE wallet to start trading."
    connected: str = "✅ Wallet connected"
    disconnected: str = "Wallet disconnected."
    connect_failed: str = "Failed to connect wallet"


def short_address(address: str) -> str:
    if len(address) <= 20:
        return address
    return f"{address[:12]}...{address[-6:]}"


class SwapChat:
    """One chat: flow controller, reconciliation engine and wallet prompts."""

    def __init__(
        self,
        session: SessionContext,
        texts: Optional[ChatTexts] = None,
        reconcile: bool = True,
    ):
        self.session = session
        self.texts = texts or ChatTexts()
        self.reconcile = reconcile
        self.controller = SwapFlowController(session)
        self.engine = OrderReconciliationEngine(session)
        self._wallet_subscription = None

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def is_connected(self) -> bool:
        return self.session.wallet_state.is_connected

    async def attach(self) -> None:
        await self.session.attach()
        if self._wallet_subscription is None or not self._wallet_subscription.active:
            self._wallet_subscription = self.session.subscribe(
                EventKind.WALLET_STATE, self._on_wallet_state
            )
        if self.reconcile:
            self.engine.start()

    async def detach(self) -> None:
        await self.engine.stop()
        self.controller.reset()
        await self.session.detach()

    def _on_wallet_state(self, event: WalletStateEvent) -> None:
        """A flow cannot outlive the wallet connection it was started with."""
        state = event.state
        if state.is_connected or state.is_loading:
            return
        if not self.controller.get_state().is_idle:
            logger.info(f"Chat {self.session_id}: wallet disconnected, abandoning flow")
            self.controller.reset()

    # ======================
    # Wallet prompts
    # ======================

    async def show_status(self) -> None:
        """Show the connect prompt, or the wallet summary with quick actions."""
        if not self.is_connected:
            await self.session.emit(
                bot_message(
                    f"<b>{esc(self.texts.title)}</b>\n\n{esc(self.texts.connect_prompt)}",
                    MessageButtons.connect_wallet("connect"),
                )
            )
            return

        state = self.session.wallet_state
        base = self.session.settings.base_currency
        lines = [f"{esc(self.texts.connected)}: <code>{esc(short_address(state.account or ''))}</code>"]
        if state.balance is not None:
            lines.append(f"Balance: {esc(fmt_amount(state.balance.total))} {esc(base)}")
        for token in state.token_balances:
            lines.append(f"{esc(token.tick)}: {esc(fmt_amount(token.amount))}")
        await self.session.emit(
            bot_message(
                "\n".join(lines),
                MessageButtons.quick_buy(self.session.settings.default_buy_token),
            )
        )

    async def connect_wallet(self) -> None:
        try:
            await self.session.connect_wallet()
        except WalletError as e:
            logger.warning(f"Chat {self.session_id} wallet connection failed: {e}")
            await self.session.emit_error(
                bot_message(
                    f"{esc(self.texts.connect_failed)}: {esc(e)}",
                    MessageButtons.connect_wallet("connect"),
                )
            )
            return
        await self.show_status()

    async def disconnect_wallet(self) -> None:
        await self.session.disconnect_wallet()
        await self.session.emit(
            bot_message(esc(self.texts.disconnected), MessageButtons.connect_wallet("connect"))
        )

    async def _require_wallet(self) -> bool:
        if self.is_connected:
            return True
        await self.session.emit(
            bot_message(esc(self.texts.connect_prompt), MessageButtons.connect_wallet("connect"))
        )
        return False

    # ======================
    # Input
    # ======================

    async def handle_text(self, text: str) -> None:
        if not await self._require_wallet():
            return
        await self.controller.handle_text(text)

    async def handle_button(self, action: str, value: Optional[str] = None) -> None:
        """Route a button press.

        Actions: `connect-wallet`, `disconnect-wallet`, `command` (value is the
        command text), `quick-buy` (value is the symbol) and the flow actions
        `select-token`, `confirm` and `cancel`.
        """
        if action == "connect-wallet":
            await self.connect_wallet()
        elif action == "disconnect-wallet":
            await self.disconnect_wallet()
        elif not await self._require_wallet():
            return
        elif action == "command":
            await self.controller.handle_command(value or "")
        elif action == "quick-buy":
            symbol = value or self.session.settings.default_buy_token
            await self.controller.handle_command(f"/buy {symbol}")
        else:
            await self.controller.handle_action(action, value)
