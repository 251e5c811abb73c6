"""Wallet provider interface and a simulated wallet for dry-run mode.

The wallet owns keys and signs; this package only asks it to.
"""

import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NativeBalance:
    """Native currency balance in human units."""

    confirmed: Decimal
    unconfirmed: Decimal
    total: Decimal


@dataclass(frozen=True)
class TokenBalance:
    """KRC-20 balance as reported by the wallet (raw integer string)."""

    tick: str
    balance: str
    dec: int
    locked: str = "0"

    @property
    def amount(self) -> Decimal:
        """Balance in human units."""
        return Decimal(self.balance) / (Decimal(10) ** self.dec)


class WalletError(Exception):
    """Raised when the wallet rejects or cannot perform a request."""

    pass


class WalletProvider(ABC):
    """Browser-extension style wallet."""

    @abstractmethod
    async def request_accounts(self) -> list[str]:
        """Ask the user to connect. Returns the connected accounts."""
        raise NotImplementedError()

    @abstractmethod
    async def get_accounts(self) -> list[str]:
        """Accounts already connected, without prompting."""
        raise NotImplementedError()

    @abstractmethod
    async def get_balance(self) -> NativeBalance:
        raise NotImplementedError()

    @abstractmethod
    async def get_token_balances(self) -> list[TokenBalance]:
        raise NotImplementedError()

    @abstractmethod
    async def send_native(
        self, address: str, amount_base_units: int, priority_fee: Optional[Decimal] = None
    ) -> str:
        """Send native currency. Returns the transaction id."""
        raise NotImplementedError()

    @abstractmethod
    async def send_token_transfer(
        self, inscription: dict, destination: str, priority_fee: Decimal
    ) -> str:
        """Sign and broadcast a KRC-20 transfer. Returns the reveal transaction id."""
        raise NotImplementedError()

    @abstractmethod
    async def get_public_key(self) -> str:
        raise NotImplementedError()

    @abstractmethod
    async def sign_message(self, message: str) -> str:
        raise NotImplementedError()

    @abstractmethod
    async def disconnect(self) -> None:
        raise NotImplementedError()

    async def current_account(self) -> Optional[str]:
        """First connected account, or None."""
        try:
            accounts = await self.get_accounts()
        except WalletError as e:
            logger.error(f"Error getting current account: {e}")
            return None
        return accounts[0] if accounts else None


DEFAULT_SIMULATED_BALANCES: dict[str, Decimal] = {
    "KAS": Decimal("1000"),
    "PINTL": Decimal("500"),
    "NACHO": Decimal("750"),
}


class SimulatedWallet(WalletProvider):
    """Deterministic fake wallet for dry-run mode and tests.

    Transaction ids are sha256 digests like the dry-run router produces;
    "signatures" are digests too and carry no cryptographic meaning.
    """

    def __init__(
        self,
        owner: str,
        base_currency: str = "KAS",
        balances: Optional[dict[str, Decimal]] = None,
        decimals: int = 8,
        connected: bool = False,
    ):
        self.owner = owner
        self.base_currency = base_currency.upper()
        self.decimals = decimals
        self._balances = dict(balances if balances is not None else DEFAULT_SIMULATED_BALANCES)
        self._connected = connected
        self.sent: list[dict] = []

    @property
    def address(self) -> str:
        digest = hashlib.sha256(self.owner.encode()).hexdigest()
        return f"kaspa:sim{digest[:52]}"

    async def request_accounts(self) -> list[str]:
        self._connected = True
        return [self.address]

    async def get_accounts(self) -> list[str]:
        return [self.address] if self._connected else []

    def _require_connected(self) -> None:
        if not self._connected:
            raise WalletError("No account connected")

    async def get_balance(self) -> NativeBalance:
        self._require_connected()
        total = self._balances.get(self.base_currency, Decimal("0"))
        return NativeBalance(confirmed=total, unconfirmed=Decimal("0"), total=total)

    async def get_token_balances(self) -> list[TokenBalance]:
        self._require_connected()
        scale = Decimal(10) ** self.decimals
        return [
            TokenBalance(tick=symbol, balance=str(int(amount * scale)), dec=self.decimals)
            for symbol, amount in sorted(self._balances.items())
            if symbol != self.base_currency
        ]

    def _tx_id(self, payload: str) -> str:
        return hashlib.sha256(f"{self.owner}{payload}{time.time()}".encode()).hexdigest()

    def _debit(self, symbol: str, amount_base_units: int) -> None:
        amount = Decimal(amount_base_units) / (Decimal(10) ** self.decimals)
        available = self._balances.get(symbol, Decimal("0"))
        if available < amount:
            raise WalletError(f"Insufficient {symbol} balance: have {available}, need {amount}")
        self._balances[symbol] = available - amount

    async def send_native(
        self, address: str, amount_base_units: int, priority_fee: Optional[Decimal] = None
    ) -> str:
        self._require_connected()
        self._debit(self.base_currency, amount_base_units)
        tx_id = self._tx_id(f"{address}{amount_base_units}")
        self.sent.append({"to": address, "amount": amount_base_units, "tx_id": tx_id})
        return tx_id

    async def send_token_transfer(
        self, inscription: dict, destination: str, priority_fee: Decimal
    ) -> str:
        self._require_connected()
        self._debit(inscription["tick"].upper(), int(inscription["amt"]))
        tx_id = self._tx_id(json.dumps(inscription, sort_keys=True))
        self.sent.append({"to": destination, "inscription": inscription, "tx_id": tx_id})
        return tx_id

    async def get_public_key(self) -> str:
        self._require_connected()
        return hashlib.sha256(f"pub:{self.owner}".encode()).hexdigest()

    async def sign_message(self, message: str) -> str:
        self._require_connected()
        return hashlib.sha256(f"{self.owner}:{message}".encode()).hexdigest()

    async def disconnect(self) -> None:
        self._connected = False
