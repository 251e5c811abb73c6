"""Pending order persistence and reconciliation."""

from swapchat.orders.models import OrderStatus, PendingOrder, is_terminal, order_key
from swapchat.orders.store import (
    KeyValueStore,
    MemoryKeyValueStore,
    OrderStore,
    SqlKeyValueStore,
)

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "OrderStatus",
    "OrderStore",
    "PendingOrder",
    "SqlKeyValueStore",
    "is_terminal",
    "order_key",
]
