"""Per-chat locking.

Telegram delivers updates concurrently; a chat's flow must see them one
at a time, in order.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Lock registry: chat_id -> asyncio.Lock
_chat_locks: dict[int, asyncio.Lock] = {}


def get_chat_lock(chat_id: int) -> asyncio.Lock:
    """Get or create the lock for a chat."""
    lock = _chat_locks.get(chat_id)
    if lock is None:
        lock = _chat_locks[chat_id] = asyncio.Lock()
    return lock


def clear_chat_locks() -> None:
    """Forget all locks (tests and shutdown)."""
    _chat_locks.clear()


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


class ChatLock:
    """Context manager serializing the handling of one chat's updates.

    Example:
        async with ChatLock(chat_id, operation="text"):
            await chat.handle_text(text)
    """

    def __init__(
        self,
        chat_id: int,
        timeout: Optional[float] = 60.0,
        operation: str = "update",
    ):
        """Initialize the lock.

        Args:
            chat_id: Telegram chat ID
            timeout: Maximum time to wait for lock (None = wait forever)
            operation: Description of the operation for logging
        """
        self.chat_id = chat_id
        self.timeout = timeout
        self.operation = operation
        self._lock: Optional[asyncio.Lock] = None
        self._acquired = False

    async def __aenter__(self) -> "ChatLock":
        self._lock = get_chat_lock(self.chat_id)

        try:
            if self.timeout:
                await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
            else:
                await self._lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(
                f"Lock timeout for chat {self.chat_id} after {self.timeout}s: {self.operation}"
            )
            raise LockTimeoutError(
                f"Could not acquire lock for chat {self.chat_id} within {self.timeout}s"
            )

        self._acquired = True
        logger.debug(f"Lock acquired for chat {self.chat_id}: {self.operation}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            logger.debug(f"Lock released for chat {self.chat_id}: {self.operation}")
        return False
