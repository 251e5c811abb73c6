"""Chat message contract shared with the presentation layer."""

import itertools
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from swapchat.services.base import Token

_message_ids = itertools.count(int(time.time() * 1000))


def next_message_id() -> int:
    """Get a process-unique, increasing message id."""
    return next(_message_ids)


class MessageType(str, Enum):
    """Author of a chat message."""

    USER = "user"
    BOT = "bot"


class ButtonKind(str, Enum):
    """Affordance attached to a bot message."""

    TOKEN_SELECT = "token_select"
    CONFIRM = "confirm"
    CONNECT_WALLET = "connect_wallet"
    QUICK_BUY = "quick_buy"


class MessageButtons(BaseModel):
    """Buttons rendered under a message.

    `tokens` is used by TOKEN_SELECT, `action` by CONNECT_WALLET
    ("connect" or "disconnect") and `symbol` by QUICK_BUY.
    """

    model_config = ConfigDict(frozen=True)

    kind: ButtonKind
    tokens: tuple[Token, ...] = ()
    action: Optional[str] = None
    symbol: Optional[str] = None

    @classmethod
    def token_select(cls, tokens: list[Token]) -> "MessageButtons":
        return cls(kind=ButtonKind.TOKEN_SELECT, tokens=tuple(tokens))

    @classmethod
    def confirm(cls) -> "MessageButtons":
        return cls(kind=ButtonKind.CONFIRM)

    @classmethod
    def connect_wallet(cls, action: str) -> "MessageButtons":
        return cls(kind=ButtonKind.CONNECT_WALLET, action=action)

    @classmethod
    def quick_buy(cls, symbol: str) -> "MessageButtons":
        return cls(kind=ButtonKind.QUICK_BUY, symbol=symbol)


class MessageData(BaseModel):
    """A single chat message.

    Bot text is HTML authored by the core with all dynamic values escaped;
    user text is plain and must be escaped by whoever renders it.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(default_factory=next_message_id)
    type: MessageType = MessageType.BOT
    text: str
    buttons: Optional[MessageButtons] = None


def bot_message(text: str, buttons: Optional[MessageButtons] = None) -> MessageData:
    """Create a bot message."""
    return MessageData(type=MessageType.BOT, text=text, buttons=buttons)


def user_message(text: str) -> MessageData:
    """Create a user message."""
    return MessageData(type=MessageType.USER, text=text)
