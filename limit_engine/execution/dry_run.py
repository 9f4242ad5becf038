"""Dry-run trade executor: logs the trade, returns a simulated fill."""

import logging
import uuid

from limit_engine.models.execution import TradeResult
from limit_engine.models.order import OrderDirection

logger = logging.getLogger(__name__)


class DryRunTradeExecutor:
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
        logger.info(
            "DRY-RUN: %s %.6f %s at %.9f (user %d)",
            direction, amount, token_symbol, reference_price, user_id,
        )
        suffix = idempotency_key or uuid.uuid4().hex
        return TradeResult(success=True, tx_reference=f"dry-run-{suffix[:16]}")
