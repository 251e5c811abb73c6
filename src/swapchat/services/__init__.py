"""Token service, swap backend and wallet integrations."""

from swapchat.services.base import PriceQuote, SwapResult, Token, TokenService

__all__ = ["PriceQuote", "SwapResult", "Token", "TokenService"]
