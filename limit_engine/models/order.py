"""Limit order models."""

from dataclasses import dataclass
from enum import StrEnum

# A failed execution is retried this many times, so 3 attempts in total.
MAX_RETRIES = 2


class OrderDirection(StrEnum):
    BUY = "BUY"
    SELL = "SELL"


class OrderStatus(StrEnum):
    ACTIVE = "ACTIVE"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.ACTIVE


@dataclass(frozen=True)
class LimitOrder:
    id: int
    user_id: int
    token_address: str
    token_symbol: str
    direction: OrderDirection
    limit_price: float  # per unit, in the base currency
    amount: float  # token quantity
    total_value: float  # amount * limit_price at creation, display only
    last_observed_price: float | None
    tx_reference: str | None
    retry_count: int
    status: OrderStatus
    created_at: str
    updated_at: str

    def is_triggered(self, current_price: float) -> bool:
        """Buy fires at or below the limit, sell at or above it."""
        if self.direction == OrderDirection.BUY:
            return current_price <= self.limit_price
        return current_price >= self.limit_price
