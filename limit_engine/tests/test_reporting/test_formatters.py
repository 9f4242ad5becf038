"""Tests for message and summary formatters."""

import json

from limit_engine.models.order import LimitOrder, OrderDirection, OrderStatus
from limit_engine.models.reporting import CycleSummary
from limit_engine.reporting.formatters import (
    format_cycle_summary_json,
    format_cycle_summary_text,
    format_failure_message,
    format_fill_message,
    format_order_confirmation,
    format_order_list,
    format_retry_message,
    price_distance,
)


def _order(direction=OrderDirection.BUY, limit_price=1.0, observed=None, order_id=3):
    return LimitOrder(
        id=order_id,
        user_id=42,
        token_address="MintX",
        token_symbol="XXX",
        direction=direction,
        limit_price=limit_price,
        amount=20.0,
        total_value=20.0 * limit_price,
        last_observed_price=observed,
        tx_reference=None,
        retry_count=0,
        status=OrderStatus.ACTIVE,
        created_at="2026-01-01 00:00:00",
        updated_at="2026-01-01 00:00:00",
    )


class TestOrderMessages:
    def test_fill_message_links_tx(self):
        text = format_fill_message(_order(), 0.9, "sig-1", "https://explorer.test/tx/")
        assert "#3" in text
        assert "BUY" in text
        assert 'href="https://explorer.test/tx/sig-1"' in text
        assert "0.900000000" in text

    def test_fill_message_without_tx(self):
        assert "Transaction: unknown" in format_fill_message(_order(), 0.9, None)

    def test_retry_message(self):
        text = format_retry_message(_order(), 0.9, "slippage", 1, 3)
        assert "attempt 1 of 3" in text
        assert "slippage" in text
        assert "retried" in text

    def test_failure_message(self):
        text = format_failure_message(_order(OrderDirection.SELL), 1.1, "no route")
        assert "SELL" in text
        assert "no route" in text
        assert "marked as failed" in text


class TestOrderList:
    def test_empty(self):
        assert format_order_list([]) == "You have no active limit orders."

    def test_grouped_by_direction(self):
        text = format_order_list([
            _order(OrderDirection.SELL, order_id=1),
            _order(OrderDirection.BUY, order_id=2),
        ])
        assert text.index("Buy Orders") < text.index("#2") < text.index("Sell Orders")
        assert text.index("Sell Orders") < text.index("#1")
        assert "Sell Orders" in text

    def test_price_distance(self):
        assert price_distance(_order(observed=None)) == ""
        assert price_distance(_order(OrderDirection.BUY, 1.0, 1.1)) == " (10.00% below)"
        assert price_distance(_order(OrderDirection.SELL, 1.0, 0.9)) == " (10.00% below)"
        assert price_distance(_order(OrderDirection.SELL, 1.0, 1.2)) == " (20.00% above)"

    def test_confirmation(self):
        text = format_order_confirmation(OrderDirection.SELL, "XXX", 0.5, 50.0, 25.0, 50.0)
        assert "50.000000 XXX" in text
        assert "25.000000 SOL" in text
        assert "50.00% of your XXX balance" in text
        assert "balance" not in format_order_confirmation(
            OrderDirection.BUY, "XXX", 0.5, 20.0, 10.0,
        )


class TestCycleSummary:
    def test_text(self):
        s = CycleSummary(cycle_id="abcdef123456", mode="dry-run", orders_checked=4,
                         instruments_checked=2, orders_filled=1, duration_seconds=1.25)
        text = format_cycle_summary_text(s)
        assert "abcdef12" in text
        assert "4 active across 2" in text
        assert "Filled: 1" in text

    def test_json(self):
        s = CycleSummary(cycle_id="c1", mode="live", errors=["boom"])
        data = json.loads(format_cycle_summary_json(s))
        assert data["mode"] == "live"
        assert data["errors"] == ["boom"]
        assert data["orders_filled"] == 0
