"""Durable key-value storage for pending orders.

Each chat session gets its own namespace, so an order is always stored
under `order_<txHash>` regardless of which chat submitted it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import delete, distinct, select

from swapchat.orders.database import Database
from swapchat.orders.models import ORDER_KEY_PREFIX, PendingOrder, StoredEntry

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String key-value storage scoped to one namespace."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete `key`. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        pass


class MemoryKeyValueStore(KeyValueStore):
    """In-process store. Pass the same `data` dict to share it between instances."""

    def __init__(self, data: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = data if data is not None else {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self.data if k.startswith(prefix))


class SqlKeyValueStore(KeyValueStore):
    """Key-value store backed by the `stored_entries` table."""

    def __init__(self, database: Database, namespace: str):
        self.database = database
        self.namespace = namespace

    async def get(self, key: str) -> Optional[str]:
        async with self.database.session() as session:
            stmt = select(StoredEntry.value).where(
                StoredEntry.namespace == self.namespace, StoredEntry.key == key
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self.database.session() as session:
            stmt = select(StoredEntry).where(
                StoredEntry.namespace == self.namespace, StoredEntry.key == key
            )
            result = await session.execute(stmt)
            entry = result.scalar_one_or_none()

            if entry is None:
                session.add(StoredEntry(namespace=self.namespace, key=key, value=value))
            else:
                entry.value = value
            await session.flush()

    async def delete(self, key: str) -> bool:
        async with self.database.session() as session:
            stmt = delete(StoredEntry).where(
                StoredEntry.namespace == self.namespace, StoredEntry.key == key
            )
            result = await session.execute(stmt)
            return result.rowcount > 0

    async def keys(self, prefix: str = "") -> list[str]:
        async with self.database.session() as session:
            stmt = (
                select(StoredEntry.key)
                .where(
                    StoredEntry.namespace == self.namespace,
                    StoredEntry.key.startswith(prefix, autoescape=True),
                )
                .order_by(StoredEntry.key)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())


async def list_namespaces(database: Database, prefix: str = ORDER_KEY_PREFIX) -> list[str]:
    """Namespaces holding at least one key that starts with `prefix`."""
    async with database.session() as session:
        stmt = (
            select(distinct(StoredEntry.namespace))
            .where(StoredEntry.key.startswith(prefix, autoescape=True))
            .order_by(StoredEntry.namespace)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())


class OrderStore:
    """Pending orders persisted as JSON under `order_<txHash>` keys."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def keys(self) -> list[str]:
        return await self.kv.keys(ORDER_KEY_PREFIX)

    async def get_raw(self, key: str) -> Optional[str]:
        return await self.kv.get(key)

    async def load(self, key: str) -> Optional[PendingOrder]:
        """Load and parse an order.

        Raises:
            pydantic.ValidationError: If the stored value is corrupt
        """
        raw = await self.kv.get(key)
        if raw is None:
            return None
        return PendingOrder.from_json(raw)

    async def save(self, order: PendingOrder) -> None:
        await self.kv.set(order.key, order.to_json())

    async def delete(self, key: str) -> bool:
        return await self.kv.delete(key)

    async def list_orders(self) -> list[PendingOrder]:
        """All parseable orders. Corrupt records are logged and left in place."""
        orders = []
        for key in await self.keys():
            try:
                order = await self.load(key)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable order record {key}: {e.error_count()} error(s)")
                continue
            if order is not None:
                orders.append(order)
        return orders
