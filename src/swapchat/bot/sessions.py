"""Registry of live chat sessions for the bot."""

import logging
from typing import Optional

from swapchat.chat import SwapChat
from swapchat.config import Settings
from swapchat.events import EventBus, EventKind, Subscription
from swapchat.notifications.telegram import TelegramNotifier
from swapchat.orders.database import Database
from swapchat.orders.store import list_namespaces
from swapchat.services.backend import OrderBackend
from swapchat.services.factory import WalletFactory, create_backend, create_session

logger = logging.getLogger(__name__)


class ChatSessionRegistry:
    """Creates, attaches and tears down one SwapChat per Telegram chat.

    Messages published on the bus are delivered through the notifier to the
    chat whose id is the session id.
    """

    def __init__(
        self,
        settings: Settings,
        database: Database,
        notifier: TelegramNotifier,
        bus: Optional[EventBus] = None,
        backend: Optional[OrderBackend] = None,
        wallet_factory: Optional[WalletFactory] = None,
    ):
        self.settings = settings
        self.database = database
        self.notifier = notifier
        self.bus = bus or EventBus()
        self.backend = backend or create_backend(settings)
        self.wallet_factory = wallet_factory
        self._chats: dict[int, SwapChat] = {}
        self._subscriptions: list[Subscription] = [
            self.bus.subscribe(EventKind.MESSAGE, notifier.deliver),
            self.bus.subscribe(EventKind.ERROR, notifier.deliver),
        ]

    def __len__(self) -> int:
        return len(self._chats)

    def __contains__(self, chat_id: int) -> bool:
        return chat_id in self._chats

    async def get(self, chat_id: int) -> SwapChat:
        """Get the chat's session, creating and attaching it on first use."""
        chat = self._chats.get(chat_id)
        if chat is not None:
            return chat

        session = create_session(
            str(chat_id),
            self.settings,
            self.bus,
            self.database,
            backend=self.backend,
            wallet_factory=self.wallet_factory,
        )
        chat = SwapChat(session)
        self._chats[chat_id] = chat
        await chat.attach()
        logger.info(f"Chat session {chat_id} attached ({len(self._chats)} active)")
        return chat

    async def restore(self) -> int:
        """Attach sessions for chats that still have pending orders."""
        restored = 0
        for namespace in await list_namespaces(self.database):
            try:
                chat_id = int(namespace)
            except ValueError:
                logger.warning(f"Ignoring non-chat order namespace {namespace}")
                continue
            if chat_id not in self._chats:
                await self.get(chat_id)
                restored += 1
        if restored:
            logger.info(f"Restored {restored} chat session(s) with pending orders")
        return restored

    async def remove(self, chat_id: int) -> None:
        chat = self._chats.pop(chat_id, None)
        if chat is not None:
            await chat.detach()

    async def close(self) -> None:
        """Detach every session and stop delivering messages."""
        for chat_id in list(self._chats):
            await self.remove(chat_id)
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
