"""Live trade executor: routes limit order executions through the swap service."""

import logging

from limit_engine.execution.swap_client import SwapClient, SwapClientError
from limit_engine.models.execution import TradeResult
from limit_engine.models.order import OrderDirection

logger = logging.getLogger(__name__)


class LiveTradeExecutor:
    def __init__(self, swap_client: SwapClient | None = None):
        self.client = swap_client or SwapClient()

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
            "LIVE: %s %.6f %s at %.9f (user %d)",
            direction, amount, token_symbol, reference_price, user_id,
        )
        try:
            result = self.client.swap(
                user_id=user_id,
                side=direction.value.lower(),
                token_address=token_address,
                amount=amount,
                reference_price=reference_price,
                idempotency_key=idempotency_key,
            )
        except SwapClientError as e:
            logger.error("LIVE FAILED: %s %s -> %s", direction, token_symbol, e)
            return TradeResult(success=False, error=str(e))

        if result.get("success"):
            signature = result.get("signature") or result.get("tx_reference")
            logger.info("LIVE FILL: %s %s (tx %s)", direction, token_symbol, signature)
            return TradeResult(success=True, tx_reference=signature)

        error = result.get("error") or result.get("message") or "Unknown swap error"
        logger.warning("LIVE REJECTED: %s %s -> %s", direction, token_symbol, error)
        return TradeResult(success=False, error=str(error))
