"""Async publish/subscribe for chat messages and wallet state changes.

Handlers are registered per event kind and receive a typed payload.
Every `subscribe` returns a `Subscription`; call `unsubscribe()` on
teardown so handlers never outlive the chat session that installed them.
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from swapchat.messages import MessageData

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Published event kinds."""

    MESSAGE = "message"
    ERROR = "error"
    WALLET_STATE = "wallet_state"


@dataclass(frozen=True)
class MessageEvent:
    """A bot message (normal or error) addressed to one chat session."""

    session_id: str
    message: MessageData


@dataclass(frozen=True)
class WalletStateEvent:
    """Wallet connection or balance change for one chat session."""

    session_id: str
    state: Any  # swapchat.session.WalletState


Payload = Union[MessageEvent, WalletStateEvent]
Handler = Callable[[Any], Union[None, Awaitable[None]]]


class Subscription:
    """Handle returned by `EventBus.subscribe`."""

    def __init__(self, bus: "EventBus", kind: EventKind, handler: Handler):
        self._bus = bus
        self.kind = kind
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        """Remove the handler. Safe to call more than once."""
        if self.active:
            self._bus._remove(self.kind, self.handler)
            self.active = False


class EventBus:
    """Typed async pub/sub.

    A failing handler is logged and skipped; it never prevents delivery to
    the remaining handlers or propagates to the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[Handler]] = {}

    def subscribe(self, kind: EventKind, handler: Handler) -> Subscription:
        """Register a sync or async handler for `kind`."""
        self._handlers.setdefault(kind, []).append(handler)
        return Subscription(self, kind, handler)

    def _remove(self, kind: EventKind, handler: Handler) -> None:
        handlers = self._handlers.get(kind)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def handler_count(self, kind: Optional[EventKind] = None) -> int:
        """Number of registered handlers, for one kind or in total."""
        if kind is not None:
            return len(self._handlers.get(kind, []))
        return sum(len(h) for h in self._handlers.values())

    async def publish(self, kind: EventKind, payload: Payload) -> int:
        """Deliver `payload` to every handler of `kind`.

        Returns:
            Number of handlers that completed without error
        """
        delivered = 0
        # Copy so handlers may unsubscribe while being called
        for handler in list(self._handlers.get(kind, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Event handler for {kind.value} failed: {type(e).__name__}: {e}")
        return delivered

    def clear(self) -> None:
        """Drop all handlers."""
        self._handlers.clear()
