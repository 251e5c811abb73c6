"""Utility modules for swapchat."""

from swapchat.utils.locks import ChatLock, LockTimeoutError, get_chat_lock

__all__ = ["ChatLock", "LockTimeoutError", "get_chat_lock"]
