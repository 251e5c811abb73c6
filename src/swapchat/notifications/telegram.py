"""Telegram delivery of chat messages.

The core publishes messages on the event bus with the chat id as session
id; the notifier sends them to that chat. Without a bot it only logs,
which is how the standalone reconciler runs when no token is configured.
"""

import logging
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.types import InlineKeyboardMarkup

from swapchat.bot.keyboards import build_keyboard
from swapchat.events import MessageEvent
from swapchat.messages import MessageData

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Service for sending chat messages to Telegram."""

    def __init__(self, bot: Optional[Bot] = None):
        self._bot = bot

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
        parse_mode: Optional[str] = "HTML",
    ) -> bool:
        """Send a message to a chat.

        Args:
            chat_id: Telegram chat ID
            text: Message text
            reply_markup: Optional inline keyboard
            parse_mode: Optional parse mode (HTML, Markdown, etc.)

        Returns:
            True if message was sent successfully
        """
        if self._bot is None:
            logger.info(f"[chat {chat_id}] {text}")
            return False

        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
            )
            return True
        except TelegramForbiddenError:
            logger.warning(f"Chat {chat_id} has blocked the bot")
            return False
        except TelegramBadRequest as e:
            logger.error(f"Bad request sending to {chat_id}: {e}")
            return False

    async def send(self, chat_id: int, message: MessageData) -> bool:
        """Send a core message with its buttons."""
        return await self.send_message(chat_id, message.text, build_keyboard(message.buttons))

    async def deliver(self, event: MessageEvent) -> None:
        """Event bus handler: send the message to the chat named by the session id."""
        try:
            chat_id = int(event.session_id)
        except ValueError:
            logger.warning(f"Cannot deliver message to non-chat session {event.session_id}")
            return
        await self.send(chat_id, event.message)
