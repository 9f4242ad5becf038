"""Reporting models for scheduler cycles."""

from dataclasses import dataclass, field


@dataclass
class CycleSummary:
    cycle_id: str
    mode: str
    status: str = "completed"
    orders_checked: int = 0
    instruments_checked: int = 0
    instruments_skipped: int = 0
    prices_updated: int = 0
    orders_triggered: int = 0
    orders_filled: int = 0
    orders_retried: int = 0
    orders_failed: int = 0
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)
