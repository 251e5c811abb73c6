"""Exception hierarchy for the swap flow and order reconciliation."""

from typing import Optional


class SwapChatError(Exception):
    """Base class for all swapchat errors."""

    pass


class InputValidationError(SwapChatError):
    """User input was rejected. The flow stays on the same step."""

    pass


class FlowStateError(SwapChatError):
    """An action arrived for a step that does not support it."""

    pass


class ServiceError(SwapChatError):
    """A quote, execution or status call failed."""

    pass


class QuoteError(ServiceError):
    """Raised when a price quote cannot be obtained."""

    pass


class ExecutionError(ServiceError):
    """Raised when a swap or buy did not produce a submitted order."""

    pass


class BackendError(ServiceError):
    """Raised by the backend client on transport or protocol failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ReconciliationError(SwapChatError):
    """A pending order could not be reconciled in this cycle."""

    pass
