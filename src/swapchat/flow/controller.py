"""Conversational swap and buy flow.

The controller turns commands, button actions and free text into steps of
the flow, calls the token service for quotes and execution, and emits chat
messages through the session's event bus. Two rules drive error handling:

* Rejected user input (bad amount, unknown token) emits a message and
  leaves the flow on the same step.
* Anything else that fails (service errors, actions that do not fit the
  current step) emits an error message and resets the flow.

Every call that awaits a service first records the flow generation. If the
flow was reset while the call was in flight, its result is dropped.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from swapchat.errors import (
    ExecutionError,
    FlowStateError,
    InputValidationError,
    QuoteError,
    SwapChatError,
)
from swapchat.flow.formatting import (
    CANCELLED,
    INVALID_AMOUNT,
    UNKNOWN_COMMAND,
    cannot_buy_base,
    error_text,
    esc,
    order_confirmation,
    quote_summary,
    token_not_found,
    token_prompt,
)
from swapchat.flow.state import (
    AMOUNT_STEPS,
    CONFIRM_STEPS,
    TOKEN_STEPS,
    FlowSnapshot,
    SwapFlowState,
    SwapStep,
)
from swapchat.messages import MessageButtons, MessageData, bot_message
from swapchat.orders.models import OrderStatus, PendingOrder
from swapchat.services.base import Token
from swapchat.session import SessionContext

logger = logging.getLogger(__name__)

SAME_TOKEN = "Cannot swap to the same token. Please choose a different token."
CONFIRM_PENDING = "Please confirm or cancel the swap above."
IDLE_HINT = "Type /swap to swap tokens or /buy [TOKEN] to buy one."


def parse_amount(value: Union[str, int, float, Decimal]) -> Decimal:
    """Parse a user amount into a positive, finite Decimal.

    Raises:
        InputValidationError: If the value is not a positive number
    """
    if isinstance(value, bool):
        raise InputValidationError(INVALID_AMOUNT)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise InputValidationError(INVALID_AMOUNT)
    if not amount.is_finite() or amount <= 0:
        raise InputValidationError(INVALID_AMOUNT)
    return amount


class SwapFlowController:
    """Drives one chat's swap/buy conversation."""

    def __init__(self, session: SessionContext):
        self.session = session
        self.settings = session.settings
        self.tokens = session.token_service
        self.orders = session.orders
        self.state = SwapFlowState()

    @property
    def base_currency(self) -> str:
        return self.settings.base_currency.upper()

    def get_state(self) -> FlowSnapshot:
        return self.state.get_state()

    def reset(self) -> None:
        """Abandon the current flow. In-flight results for it are dropped."""
        self.state.reset()

    def _is_live(self, generation: int) -> bool:
        return self.state.generation == generation

    def _new_flow(self, step: SwapStep) -> int:
        self.state.reset()
        self.state.set_step(step)
        return self.state.generation

    async def _emit(self, text: str, buttons: Optional[MessageButtons] = None) -> MessageData:
        return await self.session.emit(bot_message(text, buttons))

    async def _reject(self, error: InputValidationError) -> None:
        """Report rejected input without touching the flow."""
        logger.debug(f"Session {self.session.session_id} rejected input: {error}")
        await self.session.emit_error(bot_message(esc(str(error))))

    async def _fail(self, error: Exception, generation: int, stale_notice: bool = False) -> None:
        """Report a failure and reset the flow it belongs to.

        Failures of a flow that has since been reset are logged and only
        reported if `stale_notice` is set; the newer flow is left alone.
        """
        session_id = self.session.session_id
        live = self._is_live(generation)

        if isinstance(error, SwapChatError):
            logger.warning(f"Session {session_id} flow error: {error}")
        else:
            logger.error(f"Session {session_id} unexpected flow error: {type(error).__name__}: {error}")

        if not live and not stale_notice:
            logger.info(f"Session {session_id}: ignoring error from a superseded flow")
            return

        if isinstance(error, InputValidationError):
            text = esc(str(error))
        else:
            text = error_text(error)
        await self.session.emit_error(bot_message(text))

        if live:
            self.state.reset()

    # ======================
    # Commands
    # ======================

    async def handle_command(self, text: str) -> None:
        """Handle `/swap`, `/buy` and `/buy TOKEN`. A command always starts a new flow."""
        generation = self.state.generation
        try:
            parts = text.strip().split()
            command = parts[0].split("@", 1)[0].lower() if parts else ""
            argument = parts[1].upper() if len(parts) > 1 else None

            if command == "/swap":
                generation = self._new_flow(SwapStep.FROM_TOKEN)
                await self._offer_tokens(generation, SwapStep.FROM_TOKEN)
            elif command == "/buy" and argument:
                generation = self._new_flow(SwapStep.NONE)
                await self._start_buy_with_token(generation, argument)
            elif command == "/buy":
                generation = self._new_flow(SwapStep.BUY_TOKEN)
                await self._offer_tokens(generation, SwapStep.BUY_TOKEN, exclude=self.base_currency)
            else:
                await self._emit(UNKNOWN_COMMAND)
        except Exception as e:
            await self._fail(e, generation)

    async def _offer_tokens(
        self, generation: int, step: SwapStep, exclude: Optional[str] = None, prefix: str = ""
    ) -> None:
        tokens = await self.tokens.get_tokens()
        if not self._is_live(generation):
            return
        if exclude:
            tokens = [t for t in tokens if t.symbol != exclude]
        await self._emit(f"{prefix}{token_prompt(step)}", MessageButtons.token_select(tokens))

    async def _start_buy_with_token(self, generation: int, symbol: str) -> None:
        if symbol == self.base_currency:
            raise InputValidationError(cannot_buy_base(self.base_currency))

        tokens = await self.tokens.get_tokens()
        if not self._is_live(generation):
            return
        symbols = [t.symbol for t in tokens]
        if symbol not in symbols:
            raise InputValidationError(token_not_found(symbol, symbols))

        self.state.set_to_token(symbol)
        self.state.set_step(SwapStep.BUY_AMOUNT)
        await self._emit(
            f"Selected {esc(symbol)} to buy.\n"
            f"Please enter the amount of {esc(self.base_currency)} you want to spend:"
        )

    # ======================
    # Button actions
    # ======================

    async def handle_action(self, action: str, value: Optional[str] = None) -> None:
        """Handle `select-token`, `confirm` and `cancel` actions."""
        generation = self.state.generation
        try:
            if action == "select-token":
                await self._select_token(generation, value)
            elif action == "confirm":
                await self._confirm(generation)
            elif action == "cancel":
                self.state.reset()
                await self._emit(CANCELLED)
            else:
                raise FlowStateError(f"Unknown action: {action}")
        except Exception as e:
            await self._fail(e, generation, stale_notice=action == "confirm")

    async def _select_token(self, generation: int, value: Optional[str]) -> None:
        token = (value or "").strip().upper()
        if not token:
            raise FlowStateError("No token selected")

        step = self.state.step
        if step is SwapStep.FROM_TOKEN:
            self.state.set_from_token(token)
            self.state.set_step(SwapStep.TO_TOKEN)
            await self._offer_tokens(
                generation,
                SwapStep.TO_TOKEN,
                exclude=token,
                prefix=f"Selected {esc(token)} to swap from.\n",
            )
        elif step is SwapStep.TO_TOKEN:
            from_token = self.state.get_state().from_token
            self.state.set_to_token(token)
            self.state.set_step(SwapStep.AMOUNT)
            await self._emit(
                f"Selected {esc(token)} to buy.\n"
                f"Please enter the amount of {esc(from_token)} you want to spend:"
            )
        elif step is SwapStep.BUY_TOKEN:
            self.state.set_to_token(token)
            self.state.set_step(SwapStep.BUY_AMOUNT)
            await self._emit(
                f"Selected {esc(token)} to buy.\n"
                f"Please enter the amount of {esc(self.base_currency)} you want to spend:"
            )
        else:
            raise FlowStateError("Invalid state for token selection")

    async def _confirm(self, generation: int) -> None:
        snapshot = self.state.get_state()
        if snapshot.step not in CONFIRM_STEPS:
            raise FlowStateError("Invalid state for confirmation")

        buy = snapshot.step is SwapStep.BUY_CONFIRM
        from_token = self.base_currency if buy else snapshot.from_token
        to_token = snapshot.to_token
        amount = snapshot.amount

        try:
            if buy:
                result = await self.tokens.execute_buy(to_token, amount)
            else:
                result = await self.tokens.execute_swap(from_token, to_token, amount)
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(str(e) or "Transaction failed") from e

        if not (result.success and result.order_id):
            raise ExecutionError(result.error or "Transaction failed")
        if not result.tx_hash:
            raise ExecutionError("Order accepted without a transaction hash")

        order = PendingOrder(
            tx_hash=result.tx_hash,
            from_token=from_token,
            to_token=to_token,
            amount=amount,
            to_amount=snapshot.quote.to_amount if snapshot.quote else None,
            status=OrderStatus.SUBMITTED.value,
            order_id=result.order_id,
        )
        await self.orders.save(order)
        logger.info(
            f"Session {self.session.session_id} submitted order {order.order_id}: "
            f"{amount} {from_token} -> {to_token} ({order.tx_hash})"
        )
        await self._emit(order_confirmation(order, self.settings.explorer_link(order.tx_hash)))

        if self._is_live(generation):
            self.state.reset()
        else:
            logger.info(f"Session {self.session.session_id}: order from a superseded flow recorded")

    # ======================
    # Free text
    # ======================

    async def handle_amount(self, amount: Union[str, int, float, Decimal]) -> None:
        """Handle an amount at AMOUNT or BUY_AMOUNT and fetch a quote."""
        generation = self.state.generation
        try:
            snapshot = self.state.get_state()
            if snapshot.step not in AMOUNT_STEPS:
                raise FlowStateError("Invalid state for amount input")

            try:
                value = parse_amount(amount)
            except InputValidationError as e:
                await self._reject(e)
                return

            buy = snapshot.step is SwapStep.BUY_AMOUNT
            from_token = self.base_currency if buy else snapshot.from_token
            to_token = snapshot.to_token
            self.state.set_amount(value)

            try:
                quote = await self.tokens.get_price_quote(from_token, to_token, value)
            except QuoteError:
                raise
            except Exception as e:
                raise QuoteError(f"Failed to get quote: {e}") from e

            if not self._is_live(generation):
                logger.info(f"Session {self.session.session_id}: dropping quote for a superseded flow")
                return

            self.state.set_quote(quote)
            self.state.set_step(SwapStep.BUY_CONFIRM if buy else SwapStep.CONFIRM)
            await self._emit(quote_summary(quote, from_token, to_token), MessageButtons.confirm())
        except Exception as e:
            await self._fail(e, generation)

    async def handle_token_input(self, symbol: str) -> None:
        """Handle a typed token symbol at a token-selection step."""
        generation = self.state.generation
        try:
            token = symbol.strip().upper()
            snapshot = self.state.get_state()
            if snapshot.step not in TOKEN_STEPS:
                raise FlowStateError("Invalid state for token selection")

            tokens: list[Token] = await self.tokens.get_tokens()
            if not self._is_live(generation):
                return
            symbols = [t.symbol for t in tokens]

            if snapshot.step is SwapStep.BUY_TOKEN and token == self.base_currency:
                raise InputValidationError(cannot_buy_base(self.base_currency))
            if token not in symbols:
                raise InputValidationError(token_not_found(token, symbols))
            if snapshot.step is SwapStep.TO_TOKEN and token == snapshot.from_token:
                raise InputValidationError(SAME_TOKEN)
        except InputValidationError as e:
            await self._reject(e)
            return
        except Exception as e:
            await self._fail(e, generation)
            return

        await self.handle_action("select-token", token)

    async def handle_text(self, text: str) -> None:
        """Route free text: commands, amounts or token symbols depending on the step."""
        text = text.strip()
        if not text:
            return
        if text.startswith("/"):
            await self.handle_command(text)
            return

        step = self.state.step
        if step in AMOUNT_STEPS:
            await self.handle_amount(text)
        elif step in TOKEN_STEPS:
            await self.handle_token_input(text)
        elif step in CONFIRM_STEPS:
            await self._emit(CONFIRM_PENDING, MessageButtons.confirm())
        else:
            await self._emit(IDLE_HINT)
