"""Chat text for the swap flow and order status updates.

All output is Telegram HTML. Every dynamic value goes through `esc`, so
the presentation layer can send these strings with parse_mode=HTML as is.
Figures computed here are for display only; the backend quote is
authoritative.
"""

from decimal import Decimal, InvalidOperation
from html import escape
from typing import Optional

from swapchat.flow.state import SwapStep
from swapchat.orders.models import OrderStatus, PendingOrder
from swapchat.services.base import PriceQuote

TOKEN_PROMPTS = {
    SwapStep.FROM_TOKEN: "🔍 Select or type the token you want to swap from:",
    SwapStep.TO_TOKEN: "🎯 Select or type the token you want to swap to:",
    SwapStep.BUY_TOKEN: "💎 Select or type the token you want to buy:",
}

UNKNOWN_COMMAND = "Unknown command. Available commands: /swap, /buy [TOKEN]"
INVALID_AMOUNT = "Please enter a valid positive number."
CANCELLED = "Transaction cancelled."


def esc(value: object) -> str:
    """HTML-escape any value for inclusion in bot text."""
    return escape(str(value), quote=True)


def fmt_amount(value: Optional[Decimal]) -> str:
    """Plain decimal rendering without exponent or trailing zeros."""
    if value is None:
        return "?"
    return format(value.normalize(), "f")


def token_prompt(step: SwapStep) -> str:
    return TOKEN_PROMPTS.get(step, "🔍 Select a token:")


def minimum_received(to_amount: Decimal, slippage: str, chain_decimal: int) -> Decimal:
    """to_amount * (1 - slippage/100) / 10**chain_decimal."""
    try:
        slippage_pct = Decimal(str(slippage))
    except InvalidOperation:
        slippage_pct = Decimal("0")
    return to_amount * (1 - slippage_pct / 100) / (Decimal(10) ** chain_decimal)


def exchange_rate(from_amount: Decimal, to_amount: Decimal) -> Decimal:
    """Units of the target token per unit of the source token."""
    if from_amount == 0:
        return Decimal("0")
    return to_amount / from_amount


def transaction_link(explorer_url: str) -> str:
    return f'🔎 <a href="{esc(explorer_url)}">View Transaction</a>'


def quote_summary(quote: PriceQuote, from_token: str, to_token: str) -> str:
    """Quote card shown before confirmation."""
    rate = exchange_rate(quote.from_amount, quote.to_amount)
    min_received = minimum_received(quote.to_amount, quote.slippage, quote.chain_decimal)

    return (
        f"<b>💱 Swap Summary</b>\n\n"
        f"From: 💰 <code>{esc(fmt_amount(quote.from_amount))} {esc(from_token)}</code>\n"
        f"To: 🎯 <code>{esc(fmt_amount(quote.to_amount))} {esc(to_token)}</code>\n"
        f"📊 1 {esc(from_token)} = {rate:.6f} {esc(to_token)}\n"
        f"Price Impact: 📉 {esc(quote.price_impact)}%\n"
        f"Min Received: 🔒 {min_received:.4f} {esc(to_token)}\n"
        f"Service Fee: 🏷️ {quote.fee:.4f} {esc(to_token)}\n\n"
        f"Ready to complete this swap? 🚀"
    )


def order_confirmation(order: PendingOrder, explorer_url: str) -> str:
    """Card shown once the backend accepted an order."""
    return (
        f"✅ <b>Order Submitted Successfully</b>\n\n"
        f"Order ID: <code>{esc(order.order_id)}</code>\n\n"
        f"<b>Swap Details</b>\n"
        f"From: {esc(fmt_amount(order.amount))} {esc(order.from_token)}\n"
        f"To: {esc(fmt_amount(order.to_amount))} {esc(order.to_token)}\n\n"
        f"🔄 Your order is being processed by the DEX\n"
        f"🔔 You'll be notified when the order completes\n\n"
        f"{transaction_link(explorer_url)}"
    )


def order_status_update(order: PendingOrder, status: str, explorer_url: str) -> str:
    """Announcement for a status change of a pending order."""
    link = transaction_link(explorer_url)
    amount = esc(fmt_amount(order.amount))
    from_token = esc(order.from_token)
    to_token = esc(order.to_token)

    if status == OrderStatus.PENDING.value:
        return (
            f"⏳ Your transaction has been verified and is now processing with DEX. "
            f"Swapping {amount} {from_token} to {to_token}...\n\n{link}"
        )
    if status == OrderStatus.COMPLETED.value:
        return (
            f"✅ Your swap of {amount} {from_token} to {esc(fmt_amount(order.to_amount))} "
            f"{to_token} has been completed successfully!\n\n{link}"
        )
    if status == OrderStatus.FAILED.value:
        return (
            f"❌ Your swap of {amount} {from_token} to {to_token} has failed. "
            f"Please try again.\n\n{link}"
        )
    if status == OrderStatus.REFUNDED.value:
        return f"↩️ Your swap of {amount} {from_token} has been refunded.\n\n{link}"
    return f"Status: {esc(status)}"


# Plain text, escaped by the caller on emission.
def token_not_found(symbol: str, available: list[str]) -> str:
    return f"Token {symbol} not found. Available tokens: {', '.join(available)}"


def cannot_buy_base(base_currency: str) -> str:
    return f"Cannot buy {base_currency} directly. Please choose a different token."


def error_text(error: BaseException) -> str:
    message = str(error) or "Unknown error occurred"
    return f"Error: {esc(message)}"
