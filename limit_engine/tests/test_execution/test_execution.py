"""Tests for the dry-run and live trade executors and idempotency keys."""

import pytest
import respx
from httpx import Response

from limit_engine.execution.dry_run import DryRunTradeExecutor
from limit_engine.execution.idempotency import generate_idempotency_key
from limit_engine.execution.live_adapter import LiveTradeExecutor
from limit_engine.execution.swap_client import SwapClient
from limit_engine.models.order import OrderDirection

SWAP_URL = "http://swap.test/api/swap"


@pytest.fixture
def live():
    return LiveTradeExecutor(SwapClient(api_key="k", base_url="http://swap.test"))


def _execute(executor, direction=OrderDirection.BUY, key="idem-1"):
    return executor.execute(
        user_id=42,
        direction=direction,
        token_address="MintX",
        token_symbol="XXX",
        amount=20.0,
        reference_price=0.5,
        idempotency_key=key,
    )


class TestIdempotencyKey:
    def test_deterministic(self):
        assert generate_idempotency_key(1, 1) == generate_idempotency_key(1, 1)
        assert len(generate_idempotency_key(1, 1)) == 32

    def test_differs_by_order_and_attempt(self):
        keys = {
            generate_idempotency_key(1, 1),
            generate_idempotency_key(1, 2),
            generate_idempotency_key(2, 1),
        }
        assert len(keys) == 3


class TestDryRun:
    def test_always_succeeds(self):
        result = _execute(DryRunTradeExecutor(), key="abcdef0123456789ffff")
        assert result.success is True
        assert result.tx_reference == "dry-run-abcdef0123456789"

    def test_without_key(self):
        result = _execute(DryRunTradeExecutor(), key=None)
        assert result.success is True
        assert result.tx_reference.startswith("dry-run-")


class TestLiveTradeExecutor:
    @respx.mock
    def test_buy_success(self, live):
        route = respx.post(SWAP_URL).mock(
            return_value=Response(200, json={"success": True, "signature": "sig-1"})
        )
        result = _execute(live)
        assert result.success is True
        assert result.tx_reference == "sig-1"
        assert b'"side":"buy"' in route.calls.last.request.content.replace(b" ", b"")

    @respx.mock
    def test_sell_side(self, live):
        route = respx.post(SWAP_URL).mock(
            return_value=Response(200, json={"success": True, "tx_reference": "sig-2"})
        )
        result = _execute(live, OrderDirection.SELL)
        assert result.tx_reference == "sig-2"
        assert b'"side":"sell"' in route.calls.last.request.content.replace(b" ", b"")

    @respx.mock
    def test_rejected_by_service(self, live):
        respx.post(SWAP_URL).mock(
            return_value=Response(200, json={"success": False, "error": "slippage exceeded"})
        )
        result = _execute(live)
        assert result.success is False
        assert result.error == "slippage exceeded"

    @respx.mock
    def test_http_error_becomes_failed_result(self, live):
        respx.post(SWAP_URL).mock(return_value=Response(503, text="unavailable"))
        result = _execute(live)
        assert result.success is False
        assert "503" in result.error

    @respx.mock
    def test_unknown_error(self, live):
        respx.post(SWAP_URL).mock(return_value=Response(200, json={"success": False}))
        assert _execute(live).error == "Unknown swap error"
