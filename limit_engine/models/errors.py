"""Domain errors raised by order intake and price lookups."""


class IntakeError(Exception):
    """Base class for errors reported synchronously when creating an order."""


class OrderValidationError(IntakeError):
    """Malformed input, non-positive values or a percentage out of range."""


class InsufficientBalanceError(IntakeError):
    def __init__(self, message: str, required: float, available: float):
        super().__init__(message)
        self.required = required
        self.available = available


class BalanceUnavailableError(IntakeError):
    """The user's balance could not be determined (no wallet, RPC failure)."""


class PriceUnavailableError(Exception):
    """No usable price for an instrument right now."""

    def __init__(self, token_address: str, reason: str):
        super().__init__(f"Price unavailable for {token_address}: {reason}")
        self.token_address = token_address
        self.reason = reason
