"""Tests for the event bus."""

import pytest

from swapchat.events import EventBus, EventKind, MessageEvent
from swapchat.messages import MessageType, bot_message, user_message


def event(text: str = "hi", session_id: str = "s1") -> MessageEvent:
    return MessageEvent(session_id, bot_message(text))


class TestEventBus:
    """Tests for subscribe, publish and unsubscribe."""

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers(self):
        bus = EventBus()
        received = []

        async def async_handler(payload):
            received.append(("async", payload.message.text))

        bus.subscribe(EventKind.MESSAGE, lambda payload: received.append(("sync", payload.message.text)))
        bus.subscribe(EventKind.MESSAGE, async_handler)

        delivered = await bus.publish(EventKind.MESSAGE, event("hello"))

        assert delivered == 2
        assert received == [("sync", "hello"), ("async", "hello")]

    @pytest.mark.asyncio
    async def test_kinds_are_separate(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventKind.ERROR, received.append)

        await bus.publish(EventKind.MESSAGE, event())

        assert received == []

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        received = []
        subscription = bus.subscribe(EventKind.MESSAGE, received.append)

        subscription.unsubscribe()
        subscription.unsubscribe()
        await bus.publish(EventKind.MESSAGE, event())

        assert received == []
        assert not subscription.active
        assert bus.handler_count(EventKind.MESSAGE) == 0

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self):
        bus = EventBus()
        received = []

        def broken(payload):
            raise RuntimeError("boom")

        bus.subscribe(EventKind.MESSAGE, broken)
        bus.subscribe(EventKind.MESSAGE, received.append)

        delivered = await bus.publish(EventKind.MESSAGE, event())

        assert delivered == 1
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_while_publishing(self):
        bus = EventBus()
        received = []
        subscriptions = []

        def once(payload):
            received.append(payload)
            subscriptions[0].unsubscribe()

        subscriptions.append(bus.subscribe(EventKind.MESSAGE, once))
        bus.subscribe(EventKind.MESSAGE, received.append)

        await bus.publish(EventKind.MESSAGE, event())
        await bus.publish(EventKind.MESSAGE, event())

        assert len(received) == 3

    def test_handler_count_and_clear(self):
        bus = EventBus()
        bus.subscribe(EventKind.MESSAGE, print)
        bus.subscribe(EventKind.ERROR, print)

        assert bus.handler_count() == 2
        bus.clear()
        assert bus.handler_count() == 0


class TestMessages:
    """Tests for message construction."""

    def test_message_ids_increase(self):
        first = bot_message("a")
        second = user_message("b")

        assert second.id > first.id
        assert first.type is MessageType.BOT
        assert second.type is MessageType.USER
        assert first.buttons is None
