"""Telegram keyboard builders.

Callback data layout:

    token:<SYMBOL>         select a token
    confirm / cancel       confirm or cancel the quoted swap
    wallet:connect         connect the wallet
    wallet:disconnect      disconnect the wallet
    quick_buy:<SYMBOL>     start a buy of SYMBOL
    command:/swap          run a command
"""

from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, ReplyKeyboardMarkup, KeyboardButton

from swapchat.messages import ButtonKind, MessageButtons
from swapchat.services.base import Token


def main_menu_keyboard() -> ReplyKeyboardMarkup:
    """Create main menu keyboard."""
    keyboard = [
        [KeyboardButton(text="/swap"), KeyboardButton(text="/buy")],
        [KeyboardButton(text="/help")],
    ]
    return ReplyKeyboardMarkup(keyboard=keyboard, resize_keyboard=True)


def token_selection_keyboard(tokens: list[Token], callback_prefix: str = "token") -> InlineKeyboardMarkup:
    """Create token selection inline keyboard, three tokens per row."""
    buttons = []
    row = []

    for token in tokens:
        label = f"{token.symbol} ({token.balance})" if token.balance not in ("", "0") else token.symbol
        row.append(InlineKeyboardButton(text=label, callback_data=f"{callback_prefix}:{token.symbol}"))
        if len(row) == 3:
            buttons.append(row)
            row = []

    if row:
        buttons.append(row)

    buttons.append([InlineKeyboardButton(text="❌ Cancel", callback_data="cancel")])

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def confirm_swap_keyboard() -> InlineKeyboardMarkup:
    """Create swap confirmation keyboard."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="✅ Confirm", callback_data="confirm"),
                InlineKeyboardButton(text="❌ Cancel", callback_data="cancel"),
            ]
        ]
    )


def wallet_keyboard(action: str) -> InlineKeyboardMarkup:
    """Connect or disconnect button."""
    if action == "disconnect":
        button = InlineKeyboardButton(text="🔌 Disconnect Wallet", callback_data="wallet:disconnect")
    else:
        button = InlineKeyboardButton(text="🔗 Connect KASWARE Wallet", callback_data="wallet:connect")
    return InlineKeyboardMarkup(inline_keyboard=[[button]])


def quick_buy_keyboard(symbol: str) -> InlineKeyboardMarkup:
    """Quick actions shown once the wallet is connected."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=f"🚀 Buy {symbol}", callback_data=f"quick_buy:{symbol}")],
            [
                InlineKeyboardButton(text="💱 Swap", callback_data="command:/swap"),
                InlineKeyboardButton(text="💎 Buy", callback_data="command:/buy"),
            ],
            [InlineKeyboardButton(text="🔌 Disconnect Wallet", callback_data="wallet:disconnect")],
        ]
    )


def build_keyboard(buttons: Optional[MessageButtons]) -> Optional[InlineKeyboardMarkup]:
    """Render message buttons as an inline keyboard."""
    if buttons is None:
        return None
    if buttons.kind is ButtonKind.TOKEN_SELECT:
        return token_selection_keyboard(list(buttons.tokens))
    if buttons.kind is ButtonKind.CONFIRM:
        return confirm_swap_keyboard()
    if buttons.kind is ButtonKind.CONNECT_WALLET:
        return wallet_keyboard(buttons.action or "connect")
    if buttons.kind is ButtonKind.QUICK_BUY:
        return quick_buy_keyboard(buttons.symbol or "")
    return None
