"""Abstract token service interface consumed by the swap flow."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Token(BaseModel):
    """A token the connected wallet can trade."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Uppercase ticker")
    balance: str = Field(default="0", description="Balance in human units")
    decimals: int = Field(default=8, description="Token decimals")


class PriceQuote(BaseModel):
    """A backend quote for a candidate trade, not yet committed."""

    model_config = ConfigDict(frozen=True)

    from_amount: Decimal = Field(..., description="Amount offered, human units")
    to_amount: Decimal = Field(..., description="Amount expected, human units")
    exchange_rate: Decimal = Field(default=Decimal("0"), description="Backend exchange rate")
    fee: Decimal = Field(default=Decimal("0"), description="Service fee in the target token")
    slippage: str = Field(default="0", description="Slippage tolerance in percent")
    chain_decimal: int = Field(default=8, description="Decimals of the backend output amount")
    price_impact: Decimal = Field(default=Decimal("0"), description="Price impact in percent")


class SwapResult(BaseModel):
    """Outcome of a swap or buy submission."""

    model_config = ConfigDict(frozen=True)

    success: bool
    tx_hash: str = ""
    order_id: Optional[str] = None
    error: Optional[str] = None


class TokenService(ABC):
    """Quotes, executes and tracks trades for one wallet session."""

    @abstractmethod
    async def get_tokens(self) -> list[Token]:
        """List the tokens held by the connected wallet."""
        pass

    @abstractmethod
    async def get_price_quote(
        self,
        from_token: str,
        to_token: str,
        amount: Decimal,
    ) -> PriceQuote:
        """
        Get a price quote.

        Args:
            from_token: Token being spent
            to_token: Token being received
            amount: Amount of from_token in human units

        Returns:
            PriceQuote from the backend

        Raises:
            ServiceError: If the backend cannot quote the pair
        """
        pass

    @abstractmethod
    async def execute_swap(self, from_token: str, to_token: str, amount: Decimal) -> SwapResult:
        """Submit a swap. Failures are reported in the result, not raised."""
        pass

    @abstractmethod
    async def execute_buy(self, to_token: str, amount: Decimal) -> SwapResult:
        """Buy `to_token` by spending `amount` of the base currency."""
        pass

    @abstractmethod
    async def check_order_status(self, order_id: str) -> str:
        """Get the backend status string for an order."""
        pass

    async def is_token_available(self, symbol: str) -> bool:
        """Check whether the DEX lists `symbol`."""
        tokens = await self.get_tokens()
        return any(t.symbol == symbol.upper() for t in tokens)
