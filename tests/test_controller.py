"""Tests for the swap and buy conversation flow."""

import pytest
from decimal import Decimal

from swapchat.errors import InputValidationError, QuoteError
from swapchat.flow.controller import SAME_TOKEN, SwapFlowController, parse_amount
from swapchat.flow.formatting import CANCELLED, INVALID_AMOUNT, UNKNOWN_COMMAND
from swapchat.flow.state import SwapStep
from swapchat.messages import ButtonKind
from swapchat.services.base import PriceQuote, SwapResult


@pytest.fixture
def controller(session) -> SwapFlowController:
    return SwapFlowController(session)


async def quoted_swap(controller: SwapFlowController) -> None:
    """Walk a KAS -> PINTL swap up to the confirmation step."""
    await controller.handle_command("/swap")
    await controller.handle_action("select-token", "KAS")
    await controller.handle_action("select-token", "PINTL")
    await controller.handle_amount("10")


class TestParseAmount:
    """Tests for amount parsing."""

    @pytest.mark.parametrize("value", ["10", "0.5", " 3 ", 7, Decimal("1e2")])
    def test_accepts_positive_numbers(self, value):
        assert parse_amount(value) > 0

    @pytest.mark.parametrize("value", ["-5", "0", "abc", "", "NaN", "inf", float("nan"), True])
    def test_rejects_invalid_values(self, value):
        with pytest.raises(InputValidationError):
            parse_amount(value)


class TestSwapFlow:
    """Tests for the /swap conversation."""

    @pytest.mark.asyncio
    async def test_swap_command_offers_tokens(self, controller, messages):
        """Test that /swap prompts for the source token with all wallet tokens."""
        await controller.handle_command("/swap")

        assert controller.get_state().step is SwapStep.FROM_TOKEN
        assert messages[-1].buttons.kind is ButtonKind.TOKEN_SELECT
        assert [t.symbol for t in messages[-1].buttons.tokens] == ["KAS", "PINTL", "NACHO"]

    @pytest.mark.asyncio
    async def test_target_tokens_exclude_source(self, controller, messages):
        await controller.handle_command("/swap")
        await controller.handle_action("select-token", "KAS")

        state = controller.get_state()
        assert state.step is SwapStep.TO_TOKEN
        assert state.from_token == "KAS"
        assert "Selected KAS to swap from." in messages[-1].text
        assert [t.symbol for t in messages[-1].buttons.tokens] == ["PINTL", "NACHO"]

    @pytest.mark.asyncio
    async def test_quote_summary(self, controller, messages, token_service):
        """Test the quote card shown at confirmation."""
        await quoted_swap(controller)

        token_service.get_price_quote.assert_awaited_once_with("KAS", "PINTL", Decimal("10"))
        state = controller.get_state()
        assert state.step is SwapStep.CONFIRM
        assert state.amount == Decimal("10")
        assert state.quote is not None

        summary = messages[-1]
        assert summary.buttons.kind is ButtonKind.CONFIRM
        assert "1 KAS = 10.000000 PINTL" in summary.text
        # 100 * (1 - 1/100) / 10**8 rounds to zero at four places
        assert "Min Received" in summary.text
        assert "0.0000 PINTL" in summary.text
        assert "0.5000 PINTL" in summary.text

    @pytest.mark.asyncio
    async def test_huge_amount_quoted_and_confirmed(
        self, controller, messages, token_service, order_store
    ):
        huge = Decimal("1e28")
        token_service.get_price_quote.return_value = PriceQuote(
            from_amount=huge,
            to_amount=huge * 10,
            exchange_rate=Decimal("10"),
            fee=Decimal("0.5"),
            slippage="1",
            chain_decimal=8,
            price_impact=Decimal("0.1"),
        )
        await controller.handle_command("/swap")
        await controller.handle_action("select-token", "KAS")
        await controller.handle_action("select-token", "PINTL")

        await controller.handle_amount("1e28")

        assert controller.get_state().step is SwapStep.CONFIRM
        assert "10000000000000000000000000000 KAS" in messages[-1].text

        await controller.handle_action("confirm")

        assert "Order Submitted Successfully" in messages[-1].text
        assert "10000000000000000000000000000 KAS" in messages[-1].text
        assert (await order_store.load("order_h1")).amount == huge

    @pytest.mark.asyncio
    async def test_confirm_persists_order_and_resets(
        self, controller, messages, token_service, order_store
    ):
        """Test that a confirmed swap is stored as a pending order."""
        await quoted_swap(controller)
        await controller.handle_action("confirm")

        token_service.execute_swap.assert_awaited_once_with("KAS", "PINTL", Decimal("10"))
        order = await order_store.load("order_h1")
        assert order is not None
        assert order.status == "submitted"
        assert order.order_id == "o1"
        assert order.amount == Decimal("10")
        assert order.to_amount == Decimal("100")

        assert controller.get_state().step is SwapStep.NONE
        assert "Order Submitted Successfully" in messages[-1].text
        assert "https://kas.fyi/transaction/h1" in messages[-1].text

    @pytest.mark.asyncio
    async def test_cancel_resets(self, controller, messages):
        await quoted_swap(controller)
        await controller.handle_action("cancel")

        assert controller.get_state().step is SwapStep.NONE
        assert messages[-1].text == CANCELLED

    @pytest.mark.asyncio
    async def test_command_with_bot_suffix(self, controller):
        await controller.handle_command("/swap@ProphetSwapBot")

        assert controller.get_state().step is SwapStep.FROM_TOKEN


class TestBuyFlow:
    """Tests for /buy and /buy TOKEN."""

    @pytest.mark.asyncio
    async def test_buy_lists_tokens_without_base_currency(self, controller, messages):
        await controller.handle_command("/buy")

        assert controller.get_state().step is SwapStep.BUY_TOKEN
        assert [t.symbol for t in messages[-1].buttons.tokens] == ["PINTL", "NACHO"]

    @pytest.mark.asyncio
    async def test_buy_with_token_asks_for_amount(self, controller, messages):
        await controller.handle_command("/buy pintl")

        state = controller.get_state()
        assert state.step is SwapStep.BUY_AMOUNT
        assert state.to_token == "PINTL"
        assert "amount of KAS" in messages[-1].text

    @pytest.mark.asyncio
    async def test_buy_base_currency_rejected(self, controller, messages, token_service):
        """Test that /buy KAS is refused without touching the wallet."""
        await controller.handle_command("/buy KAS")

        assert "cannot buy kas" in messages[-1].text.lower()
        assert controller.get_state().step is SwapStep.NONE
        token_service.execute_buy.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_buy_unknown_token_rejected(self, controller, messages):
        await controller.handle_command("/buy XYZ")

        assert "Token XYZ not found" in messages[-1].text
        assert "PINTL" in messages[-1].text
        assert controller.get_state().step is SwapStep.NONE

    @pytest.mark.asyncio
    async def test_buy_executes_with_base_currency(self, controller, token_service, order_store):
        await controller.handle_command("/buy PINTL")
        await controller.handle_amount("25")

        token_service.get_price_quote.assert_awaited_once_with("KAS", "PINTL", Decimal("25"))
        assert controller.get_state().step is SwapStep.BUY_CONFIRM

        await controller.handle_action("confirm")

        token_service.execute_buy.assert_awaited_once_with("PINTL", Decimal("25"))
        token_service.execute_swap.assert_not_awaited()
        order = await order_store.load("order_h1")
        assert order.from_token == "KAS"
        assert order.to_token == "PINTL"

    @pytest.mark.asyncio
    async def test_token_names_are_escaped(self, controller, messages):
        await controller.handle_command("/buy <b>")

        assert "&lt;B&gt;" in messages[-1].text
        assert "<B>" not in messages[-1].text


class TestInputValidation:
    """Tests for rejected input that keeps the flow where it is."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["-5", "0", "abc", "NaN"])
    async def test_invalid_amount_keeps_step(self, controller, messages, token_service, amount):
        await controller.handle_command("/swap")
        await controller.handle_action("select-token", "KAS")
        await controller.handle_action("select-token", "PINTL")

        await controller.handle_amount(amount)

        assert messages[-1].text == INVALID_AMOUNT
        assert controller.get_state().step is SwapStep.AMOUNT
        token_service.get_price_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_typed_token_advances_flow(self, controller):
        await controller.handle_command("/swap")
        await controller.handle_text("nacho")

        state = controller.get_state()
        assert state.step is SwapStep.TO_TOKEN
        assert state.from_token == "NACHO"

    @pytest.mark.asyncio
    async def test_same_token_rejected(self, controller, messages):
        await controller.handle_command("/swap")
        await controller.handle_text("KAS")
        await controller.handle_text("KAS")

        assert messages[-1].text == SAME_TOKEN
        assert controller.get_state().step is SwapStep.TO_TOKEN

    @pytest.mark.asyncio
    async def test_unknown_typed_token_keeps_step(self, controller, messages):
        await controller.handle_command("/swap")
        await controller.handle_text("DOGE")

        assert "Token DOGE not found" in messages[-1].text
        assert controller.get_state().step is SwapStep.FROM_TOKEN

    @pytest.mark.asyncio
    async def test_text_routes_amount(self, controller, token_service):
        await controller.handle_command("/buy NACHO")
        await controller.handle_text("12.5")

        token_service.get_price_quote.assert_awaited_once_with("KAS", "NACHO", Decimal("12.5"))

    @pytest.mark.asyncio
    async def test_unknown_command(self, controller, messages):
        await controller.handle_command("/moon")

        assert messages[-1].text == UNKNOWN_COMMAND


class TestFlowErrors:
    """Tests for failures that reset the flow."""

    @pytest.mark.asyncio
    async def test_amount_outside_amount_step(self, controller, messages):
        await controller.handle_command("/swap")
        await controller.handle_amount("10")

        assert messages[-1].text == "Error: Invalid state for amount input"
        assert controller.get_state().step is SwapStep.NONE

    @pytest.mark.asyncio
    async def test_confirm_outside_confirm_step(self, controller, messages, token_service):
        await controller.handle_action("confirm")

        assert messages[-1].text == "Error: Invalid state for confirmation"
        token_service.execute_swap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_selection_outside_token_step(self, controller, messages):
        await controller.handle_action("select-token", "KAS")

        assert messages[-1].text == "Error: Invalid state for token selection"

    @pytest.mark.asyncio
    async def test_unknown_action(self, controller, messages):
        await controller.handle_action("explode")

        assert messages[-1].text == "Error: Unknown action: explode"

    @pytest.mark.asyncio
    async def test_quote_failure_resets(self, controller, messages, token_service):
        token_service.get_price_quote.side_effect = QuoteError("Failed to get quote: timeout")

        await quoted_swap(controller)

        assert messages[-1].text == "Error: Failed to get quote: timeout"
        assert controller.get_state().step is SwapStep.NONE

    @pytest.mark.asyncio
    async def test_execution_failure_persists_nothing(
        self, controller, messages, token_service, kv_data
    ):
        token_service.execute_swap.return_value = SwapResult(success=False, error="Insufficient KAS")

        await quoted_swap(controller)
        await controller.handle_action("confirm")

        assert messages[-1].text == "Error: Insufficient KAS"
        assert kv_data == {}
        assert controller.get_state().step is SwapStep.NONE

    @pytest.mark.asyncio
    async def test_execution_without_order_id_fails(self, controller, messages, token_service, kv_data):
        token_service.execute_swap.return_value = SwapResult(success=True, tx_hash="h1")

        await quoted_swap(controller)
        await controller.handle_action("confirm")

        assert messages[-1].text == "Error: Transaction failed"
        assert kv_data == {}


class TestSupersededFlows:
    """Tests for results that arrive after the flow was reset."""

    @pytest.mark.asyncio
    async def test_stale_quote_is_dropped(self, controller, messages, token_service):
        quote = token_service.get_price_quote.return_value

        async def reset_then_quote(*args):
            controller.reset()
            return quote

        token_service.get_price_quote.side_effect = reset_then_quote
        await quoted_swap(controller)

        assert controller.get_state().step is SwapStep.NONE
        assert controller.get_state().quote is None
        assert not any("Swap Summary" in m.text for m in messages)

    @pytest.mark.asyncio
    async def test_stale_quote_error_is_silent(self, controller, messages, token_service):
        async def reset_then_fail(*args):
            controller.reset()
            controller.state.set_step(SwapStep.FROM_TOKEN)
            raise QuoteError("Failed to get quote: late")

        token_service.get_price_quote.side_effect = reset_then_fail
        await quoted_swap(controller)

        assert controller.get_state().step is SwapStep.FROM_TOKEN
        assert not any("late" in m.text for m in messages)

    @pytest.mark.asyncio
    async def test_stale_execution_still_records_order(
        self, controller, messages, token_service, order_store
    ):
        """Test that a submitted order is tracked even if the user moved on."""
        result = token_service.execute_swap.return_value

        async def new_flow_then_result(*args):
            controller.reset()
            controller.state.set_step(SwapStep.BUY_TOKEN)
            return result

        token_service.execute_swap.side_effect = new_flow_then_result
        await quoted_swap(controller)
        await controller.handle_action("confirm")

        assert await order_store.load("order_h1") is not None
        assert "Order Submitted Successfully" in messages[-1].text
        # The newer flow is left alone
        assert controller.get_state().step is SwapStep.BUY_TOKEN
