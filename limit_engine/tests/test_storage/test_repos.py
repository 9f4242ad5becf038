"""Tests for limit order, attempt, wallet and state repositories."""

import sqlite3

import pytest

from limit_engine.models.execution import TradeResult
from limit_engine.models.order import OrderDirection, OrderStatus
from limit_engine.storage import attempt_repo, limit_order_repo, state_repo, user_repo
from limit_engine.tests.fakes import TOKEN_A, TOKEN_B


class TestLimitOrderRepo:
    def test_create_and_get(self, db):
        order_id = limit_order_repo.create_order(
            db, 42, TOKEN_A, "AAA", OrderDirection.SELL, 2.0, 5.0, 10.0, 1.8,
        )
        order = limit_order_repo.get_order(db, order_id)
        assert order.direction == OrderDirection.SELL
        assert order.status == OrderStatus.ACTIVE
        assert order.last_observed_price == 1.8
        assert order.retry_count == 0
        assert order.tx_reference is None

    def test_get_missing(self, db):
        assert limit_order_repo.get_order(db, 999) is None

    def test_list_active_excludes_terminal(self, db, make_order):
        a = make_order()
        b = make_order(token_address=TOKEN_B)
        limit_order_repo.cancel_order(db, b.id)
        assert [o.id for o in limit_order_repo.list_active_orders(db)] == [a.id]

    def test_update_observed_price_only_active(self, db, make_order):
        order = make_order()
        assert limit_order_repo.update_observed_price(db, order.id, 1.5) is True
        assert limit_order_repo.get_order(db, order.id).last_observed_price == 1.5

        limit_order_repo.cancel_order(db, order.id)
        assert limit_order_repo.update_observed_price(db, order.id, 2.0) is False
        assert limit_order_repo.get_order(db, order.id).last_observed_price == 1.5

    def test_transition_compare_and_swap(self, db, make_order):
        order = make_order()
        assert limit_order_repo.transition_status(
            db, order.id, OrderStatus.ACTIVE, OrderStatus.FILLED, "sig-1",
        )
        # Second writer loses
        assert not limit_order_repo.transition_status(
            db, order.id, OrderStatus.ACTIVE, OrderStatus.CANCELLED,
        )
        reloaded = limit_order_repo.get_order(db, order.id)
        assert reloaded.status == OrderStatus.FILLED
        assert reloaded.tx_reference == "sig-1"

    def test_transition_out_of_terminal_rejected(self, db, make_order):
        order = make_order()
        with pytest.raises(ValueError):
            limit_order_repo.transition_status(
                db, order.id, OrderStatus.FILLED, OrderStatus.ACTIVE,
            )
        with pytest.raises(ValueError):
            limit_order_repo.transition_status(
                db, order.id, OrderStatus.ACTIVE, OrderStatus.ACTIVE,
            )

    def test_increment_retry_bounded(self, db, make_order):
        order = make_order()
        assert limit_order_repo.increment_retry(db, order.id, 2) == 1
        assert limit_order_repo.increment_retry(db, order.id, 2) == 2
        assert limit_order_repo.increment_retry(db, order.id, 2) is None
        assert limit_order_repo.get_order(db, order.id).retry_count == 2

    def test_increment_retry_ignores_cancelled(self, db, make_order):
        order = make_order()
        limit_order_repo.cancel_order(db, order.id)
        assert limit_order_repo.increment_retry(db, order.id, 2) is None

    def test_cancel_all_for_user(self, db, make_order):
        make_order(user_id=1)
        make_order(user_id=1)
        done = make_order(user_id=1)
        other = make_order(user_id=2)
        limit_order_repo.transition_status(db, done.id, OrderStatus.ACTIVE, OrderStatus.FILLED)

        assert limit_order_repo.cancel_all_orders_for_user(db, 1) == 2
        assert limit_order_repo.get_order(db, done.id).status == OrderStatus.FILLED
        assert limit_order_repo.get_order(db, other.id).status == OrderStatus.ACTIVE


class TestAttemptRepo:
    def test_save_once_per_key(self, db, make_order):
        order = make_order()
        assert attempt_repo.save_attempt(db, "k1", order.id, 1, 10.0, 0.9) is True
        assert attempt_repo.save_attempt(db, "k1", order.id, 1, 10.0, 0.9) is False
        assert len(attempt_repo.get_attempts_for_order(db, order.id)) == 1

    def test_successful_attempt_lookup(self, db, make_order):
        order = make_order()
        attempt_repo.save_attempt(db, "k1", order.id, 1, 10.0, 0.9)
        attempt_repo.save_attempt_result(db, "k1", TradeResult(False, error="timeout"))
        assert attempt_repo.get_successful_attempt(db, order.id) is None

        attempt_repo.save_attempt(db, "k2", order.id, 2, 10.0, 0.8)
        attempt_repo.save_attempt_result(db, "k2", TradeResult(True, "sig-2"))
        found = attempt_repo.get_successful_attempt(db, order.id)
        assert found["tx_reference"] == "sig-2"
        assert found["attempt"] == 2

        failed = attempt_repo.get_attempts_for_order(db, order.id)[0]
        assert failed["error_message"] == "timeout"
        assert failed["completed_at"] is not None

    def test_attempt_requires_order(self, db):
        with pytest.raises(sqlite3.IntegrityError):
            attempt_repo.save_attempt(db, "k1", 999, 1, 10.0, 0.9)


class TestUserRepo:
    def test_link_and_relink(self, db):
        assert user_repo.get_wallet_address(db, 5) is None
        user_repo.link_wallet(db, 5, "WalletOne")
        user_repo.link_wallet(db, 5, "WalletTwo")
        assert user_repo.get_wallet_address(db, 5) == "WalletTwo"


class TestStateRepo:
    def test_pause_flag(self, db):
        assert state_repo.is_paused(db) is False
        state_repo.set_system_state(db, "paused", "true")
        assert state_repo.is_paused(db) is True

    def test_operator_commands(self, db):
        state_repo.log_operator_command(db, "pause", result="paused")
        state_repo.log_operator_command(db, "resume", result="resumed")
        commands = state_repo.get_recent_operator_commands(db)
        assert [c["command"] for c in commands] == ["resume", "pause"]

    def test_cycle_roundtrip(self, db):
        state_repo.create_cycle(db, "c-1", "dry-run")
        state_repo.complete_cycle(
            db, "c-1", "completed", orders_checked=3, orders_filled=1, orders_failed=None,
        )
        cycle = state_repo.get_latest_cycle(db)
        assert cycle["status"] == "completed"
        assert cycle["orders_checked"] == 3
        assert cycle["orders_filled"] == 1
        assert cycle["orders_failed"] == 0
        assert cycle["completed_at"] is not None
        assert len(state_repo.get_recent_cycles(db)) == 1
