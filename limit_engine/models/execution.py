"""Trade execution models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TradeResult:
    success: bool
    tx_reference: str | None = None
    error: str | None = None
