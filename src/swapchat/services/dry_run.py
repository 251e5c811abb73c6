"""Dry-run backend for simulated quotes and orders."""

import hashlib
import logging
from decimal import Decimal
from typing import Any, Optional

from swapchat.errors import BackendError
from swapchat.services.backend import OrderBackend, OrderParams
from swapchat.services.base import Token

logger = logging.getLogger(__name__)


# Simulated prices in KAS. For demonstration only.
SIMULATED_PRICES: dict[str, Decimal] = {
    "KAS": Decimal("1"),
    "PINTL": Decimal("0.85"),
    "NACHO": Decimal("0.0012"),
    "KASPER": Decimal("0.0004"),
    "KANGO": Decimal("0.0009"),
    "CUSDT": Decimal("8.20"),
    "CUSDC": Decimal("8.20"),
    "CETH": Decimal("26000"),
    "CBTC": Decimal("650000"),
    "CXCHNG": Decimal("0.33"),
}

# Statuses reported on successive status checks of an order
DEFAULT_STATUS_SEQUENCE = ("pending", "completed")


class DryRunBackend(OrderBackend):
    """
    Simulated backend for dry-run mode and tests.

    Quotes use fixed prices with a flat service fee; every order walks
    through `status_sequence`, one step per status check, then stays on
    the last status.
    """

    def __init__(
        self,
        fee_percent: Decimal = Decimal("0.3"),
        slippage: str = "1",
        chain_decimal: int = 8,
        status_sequence: tuple[str, ...] = DEFAULT_STATUS_SEQUENCE,
    ):
        self.fee_percent = fee_percent
        self.slippage = slippage
        self.chain_decimal = chain_decimal
        self.status_sequence = status_sequence
        self._prices = SIMULATED_PRICES.copy()
        self._prepared: dict[str, dict] = {}
        self._orders: dict[str, int] = {}

    @property
    def name(self) -> str:
        return "dry_run"

    def set_price(self, symbol: str, price: Decimal) -> None:
        """Set simulated price (in KAS) for a token."""
        self._prices[symbol.upper()] = price

    def get_price(self, symbol: str) -> Optional[Decimal]:
        return self._prices.get(symbol.upper())

    async def get_quote(self, from_token: str, to_token: str, amount: str) -> dict:
        from_price = self.get_price(from_token)
        to_price = self.get_price(to_token)
        if from_price is None or to_price is None:
            raise BackendError(f"No market for {from_token.upper()}/{to_token.upper()}")

        value = Decimal(amount) * from_price
        gross = value / to_price
        fee = gross * self.fee_percent / 100
        net = gross - fee
        scale = Decimal(10) ** self.chain_decimal

        return {
            "quote": {
                "outAmount": str(int(net * scale)),
                "serviceFee": str(int(fee * scale)),
                "chainDecimal": self.chain_decimal,
                "slippage": self.slippage,
                "priceImpact": "0.1",
                "simulated": True,
            }
        }

    async def prepare_order(self, params: OrderParams) -> dict:
        message_hash = hashlib.sha256(params.model_dump_json(by_alias=True).encode()).hexdigest()
        order_params = params.model_dump(by_alias=True)
        self._prepared[message_hash] = order_params
        return {"status": "prepared", "messageHash": message_hash, "orderParams": order_params}

    async def submit_order(
        self, order_params: Any, from_address: str, public_key: str, signature: str
    ) -> dict:
        if not signature:
            raise BackendError("Missing signature")
        tx_hash = (order_params or {}).get("transactionHash", "")
        order_id = f"sim-{hashlib.sha256(f'{tx_hash}{from_address}'.encode()).hexdigest()[:16]}"
        self._orders[order_id] = 0
        logger.info(f"[DRY RUN] Order {order_id} accepted for {tx_hash}")
        return {"orderId": order_id, "status": "submitted"}

    async def get_order_status(self, order_id: str) -> dict:
        if order_id not in self._orders:
            return {"status": "unknown"}
        checks = self._orders[order_id]
        self._orders[order_id] = checks + 1
        index = min(checks, len(self.status_sequence) - 1)
        return {"status": self.status_sequence[index]}

    async def get_available_tokens(self) -> list[Token]:
        return [Token(symbol=symbol, decimals=self.chain_decimal) for symbol in self._prices]
