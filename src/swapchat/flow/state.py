"""Step tracker for one in-progress swap or buy conversation."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from swapchat.services.base import PriceQuote


class SwapStep(str, Enum):
    """Position in the swap/buy flow."""

    NONE = "none"
    FROM_TOKEN = "from_token"
    TO_TOKEN = "to_token"
    AMOUNT = "amount"
    CONFIRM = "confirm"
    BUY_TOKEN = "buy_token"
    BUY_AMOUNT = "buy_amount"
    BUY_CONFIRM = "buy_confirm"


TOKEN_STEPS = frozenset({SwapStep.FROM_TOKEN, SwapStep.TO_TOKEN, SwapStep.BUY_TOKEN})
AMOUNT_STEPS = frozenset({SwapStep.AMOUNT, SwapStep.BUY_AMOUNT})
CONFIRM_STEPS = frozenset({SwapStep.CONFIRM, SwapStep.BUY_CONFIRM})


@dataclass(frozen=True)
class FlowSnapshot:
    """Immutable copy of the flow state."""

    step: SwapStep = SwapStep.NONE
    from_token: Optional[str] = None
    to_token: Optional[str] = None
    amount: Optional[Decimal] = None
    quote: Optional[PriceQuote] = None
    generation: int = 0

    @property
    def is_buy(self) -> bool:
        return self.step in (SwapStep.BUY_TOKEN, SwapStep.BUY_AMOUNT, SwapStep.BUY_CONFIRM)

    @property
    def is_idle(self) -> bool:
        return self.step is SwapStep.NONE


class SwapFlowState:
    """Mutable flow record owned by a single controller.

    Holds data only; validation belongs to the controller. `generation`
    increases on every reset so callers can tell whether a flow they
    started is still the live one.
    """

    def __init__(self) -> None:
        self._step = SwapStep.NONE
        self._from_token: Optional[str] = None
        self._to_token: Optional[str] = None
        self._amount: Optional[Decimal] = None
        self._quote: Optional[PriceQuote] = None
        self._generation = 0

    @property
    def step(self) -> SwapStep:
        return self._step

    @property
    def generation(self) -> int:
        return self._generation

    def reset(self) -> None:
        """Clear every field back to the initial values."""
        self._step = SwapStep.NONE
        self._from_token = None
        self._to_token = None
        self._amount = None
        self._quote = None
        self._generation += 1

    def get_state(self) -> FlowSnapshot:
        return FlowSnapshot(
            step=self._step,
            from_token=self._from_token,
            to_token=self._to_token,
            amount=self._amount,
            quote=self._quote,
            generation=self._generation,
        )

    def set_step(self, step: SwapStep) -> None:
        self._step = step

    def set_from_token(self, token: str) -> None:
        self._from_token = token

    def set_to_token(self, token: str) -> None:
        self._to_token = token

    def set_amount(self, amount: Decimal) -> None:
        self._amount = amount

    def set_quote(self, quote: PriceQuote) -> None:
        self._quote = quote
