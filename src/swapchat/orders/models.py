"""Pending order record and its SQLAlchemy key-value table."""

import time
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

ORDER_KEY_PREFIX = "order_"


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class OrderStatus(str, Enum):
    """Backend order statuses the chat knows how to describe."""

    SUBMITTED = "submitted"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    UNKNOWN = "unknown"


TERMINAL_STATUSES = frozenset(
    {OrderStatus.COMPLETED.value, OrderStatus.FAILED.value, OrderStatus.REFUNDED.value}
)


def is_terminal(status: str) -> bool:
    """Check whether no further transitions are expected for `status`."""
    return status.strip().lower() in TERMINAL_STATUSES


def order_key(tx_hash: str) -> str:
    """Storage key for the order submitted in `tx_hash`."""
    return f"{ORDER_KEY_PREFIX}{tx_hash}"


def now_ms() -> int:
    return int(time.time() * 1000)


class PendingOrder(BaseModel):
    """A submitted order whose settlement is still being tracked.

    Serialized with the camelCase field names of the persisted layout.
    """

    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="txHash")
    from_token: str = Field(..., alias="fromToken")
    to_token: str = Field(..., alias="toToken")
    amount: Decimal
    to_amount: Optional[Decimal] = Field(default=None, alias="toAmount")
    status: str = OrderStatus.SUBMITTED.value
    order_id: str = Field(..., alias="orderId")
    last_checked: int = Field(default_factory=now_ms, alias="lastChecked")
    announced_status: Optional[str] = Field(default=None, alias="announcedStatus")

    @property
    def key(self) -> str:
        return order_key(self.tx_hash)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> "PendingOrder":
        """Parse a stored record.

        Raises:
            pydantic.ValidationError: If the record is corrupt or partial
        """
        return cls.model_validate_json(raw)


class StoredEntry(Base):
    """One durable key-value pair, scoped by namespace (one per chat)."""

    __tablename__ = "stored_entries"
    __table_args__ = (Index("ix_stored_entries_namespace_key", "namespace", "key", unique=True),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
