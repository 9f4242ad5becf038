"""User-facing order operations: create, cancel, list.

Creation validates raw text through the intake validator, so nothing invalid
ever reaches storage. Cancellation is owner-only and never touches terminal
orders.
"""

import logging
from pathlib import Path

from limit_engine.interfaces import BalanceProvider, PriceOracle
from limit_engine.intake.validator import OrderIntakeValidator
from limit_engine.models.order import LimitOrder, OrderDirection, OrderStatus
from limit_engine.storage import limit_order_repo, state_repo, user_repo
from limit_engine.storage.database import connect, run_migrations

logger = logging.getLogger(__name__)


class LimitOrderService:
    def __init__(
        self,
        db_path: str | Path,
        balance_provider: BalanceProvider,
        price_oracle: PriceOracle | None = None,
    ):
        self.db_path = db_path
        self.validator = OrderIntakeValidator(balance_provider)
        self.prices = price_oracle

    def _conn(self):
        conn = connect(self.db_path)
        run_migrations(conn)
        return conn

    def create_order(
        self,
        user_id: int,
        direction: OrderDirection,
        token_address: str,
        raw_text: str,
        token_symbol: str = "",
    ) -> LimitOrder:
        """Validate raw input and persist an ACTIVE order.

        Raises IntakeError subclasses on invalid input or insufficient balance.
        The current price, when available, is stored as the first observation.
        """
        symbol = token_symbol or token_address[:6]
        validated = self.validator.parse_and_validate(
            raw_text, direction, token_address, symbol, user_id,
        )

        initial_price = None
        if self.prices is not None:
            try:
                initial_price = self.prices.get_price(token_address)
            except Exception as e:
                logger.debug("No initial price for %s: %s", token_address, e)

        conn = self._conn()
        try:
            order_id = limit_order_repo.create_order(
                conn,
                user_id=user_id,
                token_address=token_address,
                token_symbol=symbol,
                direction=direction,
                limit_price=validated.price,
                amount=validated.amount,
                total_value=validated.total,
                last_observed_price=initial_price,
            )
            order = limit_order_repo.get_order(conn, order_id)
        finally:
            conn.close()

        assert order is not None
        logger.info(
            "Created %s limit order #%d for user %d: %.6f %s at %.9f",
            direction, order_id, user_id, validated.amount, symbol, validated.price,
        )
        return order

    def cancel_order(self, order_id: int, user_id: int) -> bool:
        """Cancel one ACTIVE order owned by user_id. False if not found, not theirs, or terminal."""
        conn = self._conn()
        try:
            order = limit_order_repo.get_order(conn, order_id)
            if order is None or order.user_id != user_id:
                logger.info("Order #%d not found for user %d", order_id, user_id)
                return False
            if order.status != OrderStatus.ACTIVE:
                return False
            cancelled = limit_order_repo.cancel_order(conn, order_id)
        finally:
            conn.close()

        if cancelled:
            logger.info("Order #%d cancelled by user %d", order_id, user_id)
        return cancelled

    def cancel_all_orders(self, user_id: int) -> int:
        conn = self._conn()
        try:
            count = limit_order_repo.cancel_all_orders_for_user(conn, user_id)
        finally:
            conn.close()
        logger.info("Cancelled %d orders for user %d", count, user_id)
        return count

    def list_orders(self, user_id: int) -> list[LimitOrder]:
        """Active orders of a user, newest first."""
        conn = self._conn()
        try:
            return limit_order_repo.list_active_orders_for_user(conn, user_id)
        finally:
            conn.close()

    def order_history(
        self, user_id: int, status: OrderStatus | None = None
    ) -> list[LimitOrder]:
        conn = self._conn()
        try:
            return limit_order_repo.list_orders_for_user(conn, user_id, status)
        finally:
            conn.close()

    def get_order(self, order_id: int) -> LimitOrder | None:
        conn = self._conn()
        try:
            return limit_order_repo.get_order(conn, order_id)
        finally:
            conn.close()

    def percentage_of_balance(
        self, amount: float, token_address: str, user_id: int
    ) -> float | None:
        return self.validator.percentage_of_balance(amount, token_address, user_id)

    def link_wallet(self, user_id: int, wallet_address: str) -> None:
        conn = self._conn()
        try:
            user_repo.link_wallet(conn, user_id, wallet_address)
            state_repo.log_operator_command(
                conn, "link_wallet", f"user={user_id}", wallet_address,
            )
        finally:
            conn.close()
        logger.info("Linked wallet for user %d", user_id)
