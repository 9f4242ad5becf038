"""Execution scheduler: periodically re-prices active limit orders and executes them.

One background thread runs cycles back to back on a fixed interval. Each cycle:

1. Loads all ACTIVE orders and groups them by token.
2. Per token, one at a time with a short pause between tokens, fetches the
   current price once. A failed lookup skips the token for this cycle.
3. Stores the observed price on every order of the token (best effort).
4. For each triggered order (buy: price <= limit, sell: price >= limit),
   re-reads the order, and if still ACTIVE executes it at the market price.
5. Success marks the order FILLED. A failure leaves it ACTIVE with one more
   retry counted so the next cycle tries again; once retries are exhausted
   the order is FAILED.

Retry is implicit: a failed order simply stays ACTIVE and is picked up again
by the next cycle. All status and retry writes are compare-and-swap on ACTIVE,
so a concurrent cancellation is never overwritten.
"""

import logging
import sqlite3
import threading
import time
import uuid
from collections import defaultdict
from pathlib import Path

from limit_engine.config.schema import EngineConfig
from limit_engine.execution.idempotency import generate_idempotency_key
from limit_engine.interfaces import Notifier, PriceOracle, TradeExecutor
from limit_engine.models.execution import TradeResult
from limit_engine.models.order import LimitOrder, OrderStatus
from limit_engine.models.reporting import CycleSummary
from limit_engine.reporting.formatters import (
    format_cycle_summary_text,
    format_failure_message,
    format_fill_message,
    format_retry_message,
)
from limit_engine.storage import attempt_repo, limit_order_repo, state_repo
from limit_engine.storage.database import connect, run_migrations

logger = logging.getLogger(__name__)


class ExecutionScheduler:
    def __init__(
        self,
        config: EngineConfig,
        db_path: str | Path,
        price_oracle: PriceOracle,
        trade_executor: TradeExecutor,
        notifier: Notifier,
    ):
        self.config = config
        self.db_path = db_path
        self.prices = price_oracle
        self.executor = trade_executor
        self.notifier = notifier
        self.interval = config.scheduler.interval_seconds
        self.instrument_delay = config.scheduler.instrument_delay_ms / 1000
        self.max_retries = config.scheduler.max_retries
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self.last_summary: CycleSummary | None = None

    # --- Lifecycle ---

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background loop. No-op if it is already running."""
        with self._lock:
            if self.is_running:
                logger.warning("Execution scheduler is already running")
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._loop, name="limit-order-scheduler", daemon=True,
            )
            self._thread.start()
        logger.info(
            "Execution scheduler started (interval %ds, mode %s)",
            self.interval, self.config.execution.mode.value,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait for the in-flight cycle to finish."""
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            logger.info("Execution scheduler stop signal sent")
        thread.join(timeout)
        with self._lock:
            if not thread.is_alive():
                self._thread = None
                logger.info("Execution scheduler stopped")

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            cycle_start = time.monotonic()
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Limit order cycle crashed")

            # A long cycle pushes out the next one; cycles never overlap.
            elapsed = time.monotonic() - cycle_start
            self._stop_event.wait(max(0.0, self.interval - elapsed))

    # --- Cycle ---

    def run_cycle(self) -> CycleSummary:
        """Run one full pass over all active orders."""
        start_time = time.monotonic()
        summary = CycleSummary(
            cycle_id=str(uuid.uuid4()), mode=self.config.execution.mode.value,
        )

        conn = connect(self.db_path)
        try:
            run_migrations(conn)
            state_repo.create_cycle(conn, summary.cycle_id, summary.mode)

            if state_repo.is_paused(conn):
                logger.info("System paused, skipping limit order cycle")
                summary.status = "skipped"
            else:
                self._process_active_orders(conn, summary)

            summary.duration_seconds = time.monotonic() - start_time
            self._complete_cycle(conn, summary)
        finally:
            conn.close()

        self.last_summary = summary
        if summary.orders_checked or summary.errors:
            logger.info("%s", format_cycle_summary_text(summary))
        return summary

    def _process_active_orders(
        self, conn: sqlite3.Connection, summary: CycleSummary
    ) -> None:
        orders = limit_order_repo.list_active_orders(conn)
        summary.orders_checked = len(orders)
        if not orders:
            logger.debug("No active limit orders found")
            return

        by_token: dict[str, list[LimitOrder]] = defaultdict(list)
        for order in orders:
            by_token[order.token_address].append(order)
        logger.info(
            "Processing %d active limit orders across %d tokens",
            len(orders), len(by_token),
        )

        for i, (token_address, token_orders) in enumerate(by_token.items()):
            if i > 0 and self.instrument_delay:
                time.sleep(self.instrument_delay)
            summary.instruments_checked += 1
            try:
                self._process_instrument(conn, token_address, token_orders, summary)
            except Exception as e:
                logger.exception("Error processing token %s", token_address)
                summary.errors.append(f"{token_address}: {e}")

    def _process_instrument(
        self,
        conn: sqlite3.Connection,
        token_address: str,
        orders: list[LimitOrder],
        summary: CycleSummary,
    ) -> None:
        symbol = orders[0].token_symbol
        try:
            current_price = self.prices.get_price(token_address)
        except Exception as e:
            logger.warning("Failed to get price for %s (%s): %s", symbol, token_address, e)
            summary.instruments_skipped += 1
            return
        logger.debug("Current price for %s: %.9f", symbol, current_price)

        for order in orders:
            try:
                if limit_order_repo.update_observed_price(conn, order.id, current_price):
                    summary.prices_updated += 1
            except sqlite3.Error as e:
                logger.warning("Failed to update price for order #%d: %s", order.id, e)

        for order in orders:
            if not order.is_triggered(current_price):
                continue
            summary.orders_triggered += 1
            try:
                self._execute_order(conn, order, current_price, summary)
            except Exception as e:
                logger.exception("Failed to execute order #%d", order.id)
                summary.errors.append(f"order #{order.id}: {e}")

    def _execute_order(
        self,
        conn: sqlite3.Connection,
        order: LimitOrder,
        current_price: float,
        summary: CycleSummary,
    ) -> None:
        # The order may have been cancelled since the cycle loaded it.
        current = limit_order_repo.get_order(conn, order.id)
        if current is None or current.status != OrderStatus.ACTIVE:
            logger.info(
                "Order #%d is no longer active (%s), skipping",
                order.id, current.status if current else "missing",
            )
            return

        prior = attempt_repo.get_successful_attempt(conn, current.id)
        if prior is not None:
            logger.warning(
                "Order #%d already executed (tx %s) but was not recorded; recording fill",
                current.id, prior["tx_reference"],
            )
            self._record_fill(conn, current, current_price, prior["tx_reference"], summary)
            return

        attempt = current.retry_count + 1
        key = generate_idempotency_key(current.id, attempt)
        try:
            recorded = attempt_repo.save_attempt(
                conn, key, current.id, attempt, current.amount, current_price
            )
        except sqlite3.Error as e:
            logger.error(
                "Cannot record attempt %d of order #%d, not executing: %s",
                attempt, current.id, e,
            )
            summary.errors.append(f"order #{current.id}: attempt not recorded: {e}")
            return
        if not recorded:
            logger.warning(
                "Re-running attempt %d of order #%d with the same idempotency key",
                attempt, current.id,
            )

        logger.info(
            "Executing %s order #%d for %.6f %s at limit %.9f (market %.9f)",
            current.direction, current.id, current.amount, current.token_symbol,
            current.limit_price, current_price,
        )
        result = self._dispatch(current, current_price, key)

        try:
            attempt_repo.save_attempt_result(conn, key, result)
        except sqlite3.Error as e:
            logger.error("Failed to record attempt result for order #%d: %s", current.id, e)

        if result.success:
            self._record_fill(conn, current, current_price, result.tx_reference, summary)
        else:
            self._record_failure(conn, current, current_price, result, summary)

    def _dispatch(self, order: LimitOrder, current_price: float, key: str) -> TradeResult:
        try:
            return self.executor.execute(
                user_id=order.user_id,
                direction=order.direction,
                token_address=order.token_address,
                token_symbol=order.token_symbol,
                amount=order.amount,
                reference_price=current_price,
                idempotency_key=key,
            )
        except Exception as e:
            logger.exception("Trade execution raised for order #%d", order.id)
            return TradeResult(success=False, error=str(e))

    def _record_fill(
        self,
        conn: sqlite3.Connection,
        order: LimitOrder,
        current_price: float,
        tx_reference: str | None,
        summary: CycleSummary,
    ) -> None:
        try:
            moved = limit_order_repo.transition_status(
                conn, order.id, OrderStatus.ACTIVE, OrderStatus.FILLED, tx_reference,
            )
        except sqlite3.Error as e:
            logger.error(
                "Trade for order #%d succeeded (tx %s) but could not be recorded: %s",
                order.id, tx_reference, e,
            )
            summary.errors.append(f"order #{order.id}: fill not recorded: {e}")
            return

        if moved:
            summary.orders_filled += 1
            logger.info("Order #%d filled (tx %s)", order.id, tx_reference)
        else:
            # Cancelled while executing; the cancellation stands.
            logger.warning(
                "Order #%d changed state during execution; fill (tx %s) not recorded",
                order.id, tx_reference,
            )
        self._notify(
            order.user_id,
            format_fill_message(
                order, current_price, tx_reference,
                self.config.notifications.explorer_tx_url,
            ),
        )

    def _record_failure(
        self,
        conn: sqlite3.Connection,
        order: LimitOrder,
        current_price: float,
        result: TradeResult,
        summary: CycleSummary,
    ) -> None:
        error = result.error or "Unknown error"
        max_attempts = self.max_retries + 1
        logger.warning(
            "Order #%d attempt %d/%d failed: %s",
            order.id, order.retry_count + 1, max_attempts, error,
        )

        try:
            if order.retry_count >= self.max_retries:
                if not limit_order_repo.transition_status(
                    conn, order.id, OrderStatus.ACTIVE, OrderStatus.FAILED,
                ):
                    logger.info("Order #%d is no longer active, not marking failed", order.id)
                    return
                summary.orders_failed += 1
                self._notify(order.user_id, format_failure_message(order, current_price, error))
                return

            new_count = limit_order_repo.increment_retry(conn, order.id, self.max_retries)
        except sqlite3.Error as e:
            logger.error("Failed to record failed attempt for order #%d: %s", order.id, e)
            summary.errors.append(f"order #{order.id}: failure not recorded: {e}")
            return

        if new_count is None:
            logger.info("Order #%d is no longer active, retry not counted", order.id)
            return
        summary.orders_retried += 1
        self._notify(
            order.user_id,
            format_retry_message(order, current_price, error, new_count, max_attempts),
        )

    def _notify(self, user_id: int, message: str) -> None:
        try:
            if not self.notifier.send(user_id, message):
                logger.warning("Notification to user %d was not delivered", user_id)
        except Exception:
            logger.exception("Notifier raised for user %d", user_id)

    def _complete_cycle(self, conn: sqlite3.Connection, summary: CycleSummary) -> None:
        try:
            state_repo.complete_cycle(
                conn,
                summary.cycle_id,
                "completed_with_errors" if summary.errors else summary.status,
                error_message="; ".join(summary.errors) or None,
                orders_checked=summary.orders_checked,
                instruments_checked=summary.instruments_checked,
                instruments_skipped=summary.instruments_skipped,
                orders_triggered=summary.orders_triggered,
                orders_filled=summary.orders_filled,
                orders_retried=summary.orders_retried,
                orders_failed=summary.orders_failed,
            )
        except sqlite3.Error as e:
            logger.error("Failed to record cycle %s: %s", summary.cycle_id, e)
