"""Capabilities the engine depends on.

Concrete HTTP clients and the in-memory fakes used in tests both satisfy these
structurally; nothing needs to inherit from them.
"""

from typing import Protocol

from limit_engine.models.execution import TradeResult
from limit_engine.models.order import OrderDirection


class PriceOracle(Protocol):
    def get_price(self, token_address: str) -> float:
        """Current price in the base unit. Raises PriceUnavailableError."""


class TradeExecutor(Protocol):
    def execute(
        self,
        user_id: int,
        direction: OrderDirection,
        token_address: str,
        token_symbol: str,
        amount: float,
        reference_price: float,
        idempotency_key: str | None = None,
    ) -> TradeResult:
        """Buy or sell `amount` of the token valued at `reference_price`."""


class BalanceProvider(Protocol):
    def get_balance(self, user_id: int, token_address: str) -> float:
        """Token balance held by the user. Raises BalanceUnavailableError."""


class Notifier(Protocol):
    def send(self, user_id: int, message: str) -> bool:
        """Deliver a message to the user. Returns False if delivery failed."""
