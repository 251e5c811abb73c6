"""Swap, buy and free text handlers.

All flow logic lives in SwapChat; handlers only forward updates under the
chat's lock. Replies arrive through the registry's notifier.
"""

import logging
from typing import Optional

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from swapchat.bot.sessions import ChatSessionRegistry
from swapchat.utils.locks import ChatLock, LockTimeoutError

logger = logging.getLogger(__name__)

router = Router()

# callback prefix -> SwapChat button action
CALLBACK_ACTIONS = {
    "token": "select-token",
    "quick_buy": "quick-buy",
    "command": "command",
}


def parse_callback(data: str) -> tuple[Optional[str], Optional[str]]:
    """Map callback data to a (action, value) pair."""
    if data == "confirm":
        return "confirm", None
    if data == "cancel":
        return "cancel", None
    if data == "wallet:connect":
        return "connect-wallet", None
    if data == "wallet:disconnect":
        return "disconnect-wallet", None

    prefix, _, value = data.partition(":")
    action = CALLBACK_ACTIONS.get(prefix)
    if action is None or not value:
        return None, None
    return action, value


@router.message(Command("swap", "buy"))
@router.message(F.text)
async def handle_text(message: Message, registry: ChatSessionRegistry) -> None:
    """Forward commands, amounts and token symbols to the chat session."""
    if not message.text:
        return

    try:
        async with ChatLock(message.chat.id, operation="text"):
            chat = await registry.get(message.chat.id)
            await chat.handle_text(message.text)
    except LockTimeoutError:
        await message.answer("Still working on your previous request. Please try again.")


@router.callback_query(F.data)
async def handle_callback(callback: CallbackQuery, registry: ChatSessionRegistry) -> None:
    """Forward inline button presses to the chat session."""
    action, value = parse_callback(callback.data or "")
    if action is None or callback.message is None:
        logger.warning(f"Ignoring callback data: {callback.data!r}")
        await callback.answer()
        return

    # Acknowledge first so the button spinner stops while the backend works
    await callback.answer()

    chat_id = callback.message.chat.id
    try:
        async with ChatLock(chat_id, operation=f"callback:{action}"):
            chat = await registry.get(chat_id)
            await chat.handle_button(action, value)
    except LockTimeoutError:
        await callback.message.answer("Still working on your previous request. Please try again.")
