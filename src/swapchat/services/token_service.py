"""Token service backed by a wallet provider and the swap backend."""

import logging
import time
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from swapchat.config import Settings
from swapchat.errors import BackendError, QuoteError
from swapchat.services.backend import OrderBackend, OrderParams
from swapchat.services.base import PriceQuote, SwapResult, Token, TokenService
from swapchat.services.wallet import WalletError, WalletProvider

logger = logging.getLogger(__name__)


def to_base_units(amount: Decimal, decimals: int = 8) -> int:
    """Convert a human amount to integer base units, rounding down."""
    return int((amount * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_FLOOR))


def fmt_balance(value: Decimal) -> str:
    return format(value.normalize(), "f") if value else "0"


class WalletTokenService(TokenService):
    """TokenService for one wallet session.

    Balances come from the wallet; quotes, order placement and status
    come from the backend. The DEX asset list is cached for
    `settings.token_refresh_interval` seconds.
    """

    def __init__(self, wallet: WalletProvider, backend: OrderBackend, settings: Settings):
        self.wallet = wallet
        self.backend = backend
        self.settings = settings
        self.base_currency = settings.base_currency.upper()
        self._available: set[str] = set()
        self._available_at: Optional[float] = None

    async def get_tokens(self) -> list[Token]:
        try:
            if not await self.wallet.get_accounts():
                return []
            native = await self.wallet.get_balance()
            balances = await self.wallet.get_token_balances()
        except WalletError as e:
            logger.error(f"Error reading wallet balances: {e}")
            return []

        tokens = [
            Token(
                symbol=self.base_currency,
                balance=fmt_balance(native.total),
                decimals=self.settings.base_currency_decimals,
            )
        ]
        for balance in balances:
            tokens.append(
                Token(
                    symbol=balance.tick.upper(),
                    balance=fmt_balance(balance.amount),
                    decimals=balance.dec,
                )
            )
        return tokens

    async def get_price_quote(self, from_token: str, to_token: str, amount: Decimal) -> PriceQuote:
        try:
            data = await self.backend.get_quote(from_token, to_token, str(amount))
        except BackendError as e:
            raise QuoteError(f"Failed to get quote: {e}") from e

        try:
            quote = data["quote"]
            chain_decimal = int(quote.get("chainDecimal", 8))
            scale = Decimal(10) ** chain_decimal
            to_amount = Decimal(str(quote["outAmount"])) / scale
            fee = Decimal(str(quote.get("serviceFee", "0"))) / scale
            price_impact = Decimal(str(quote.get("priceImpact", "0")))
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise QuoteError(f"Failed to get quote: malformed backend response ({e})") from e

        return PriceQuote(
            from_amount=amount,
            to_amount=to_amount,
            exchange_rate=to_amount / amount if amount else Decimal("0"),
            fee=fee,
            slippage=str(quote.get("slippage", "0")),
            chain_decimal=chain_decimal,
            price_impact=price_impact,
        )

    async def _token_decimals(self, symbol: str) -> int:
        for balance in await self.wallet.get_token_balances():
            if balance.tick.upper() == symbol:
                return balance.dec
        return 8

    async def _send_funds(self, from_token: str, amount: Decimal) -> str:
        """Broadcast the transfer that funds the order. Returns the tx hash."""
        destination = self.settings.minter_address(from_token)

        if from_token == self.base_currency:
            sompi = to_base_units(amount, self.settings.base_currency_decimals)
            return await self.wallet.send_native(destination, sompi)

        amount_units = to_base_units(amount, await self._token_decimals(from_token))
        inscription = {
            "p": "KRC-20",
            "op": "transfer",
            "tick": from_token,
            "amt": str(amount_units),
            "to": destination,
        }
        return await self.wallet.send_token_transfer(
            inscription, destination, self.settings.priority_fee
        )

    async def execute_swap(self, from_token: str, to_token: str, amount: Decimal) -> SwapResult:
        from_token = from_token.upper()
        to_token = to_token.upper()
        tx_hash = ""

        try:
            accounts = await self.wallet.get_accounts()
            if not accounts:
                return SwapResult(success=False, error="Wallet not connected")

            tx_hash = await self._send_funds(from_token, amount)
            logger.info(f"Funding transfer broadcast: {amount} {from_token} -> {tx_hash}")

            params = OrderParams(
                transaction_hash=tx_hash,
                from_token=from_token,
                to_token=to_token,
                amount=str(amount),
                from_address=accounts[0],
                public_key=await self.wallet.get_public_key(),
            )
            result = await self.backend.place_order(params, self.wallet.sign_message)
        except (WalletError, BackendError) as e:
            logger.error(f"Swap {from_token}->{to_token} failed: {e}")
            return SwapResult(success=False, tx_hash=tx_hash, error=str(e))

        order_id = result.get("orderId")
        if not order_id:
            return SwapResult(
                success=False, tx_hash=tx_hash, error=result.get("error") or "Transaction failed"
            )
        return SwapResult(success=True, tx_hash=tx_hash, order_id=str(order_id))

    async def execute_buy(self, to_token: str, amount: Decimal) -> SwapResult:
        return await self.execute_swap(self.base_currency, to_token, amount)

    async def check_order_status(self, order_id: str) -> str:
        data = await self.backend.get_order_status(order_id)
        return str(data.get("status") or "unknown")

    async def _refresh_available(self) -> None:
        now = time.monotonic()
        if (
            self._available_at is not None
            and now - self._available_at < self.settings.token_refresh_interval
        ):
            return
        tokens = await self.backend.get_available_tokens()
        self._available = {t.symbol.upper() for t in tokens}
        self._available_at = now
        logger.debug(f"Refreshed DEX asset list: {len(self._available)} tokens")

    async def is_token_available(self, symbol: str) -> bool:
        symbol = symbol.upper()
        if symbol == self.base_currency:
            return True
        try:
            await self._refresh_available()
        except BackendError as e:
            logger.error(f"Error fetching available tokens: {e}")
        return symbol in self._available
