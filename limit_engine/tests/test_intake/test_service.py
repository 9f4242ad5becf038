"""Tests for LimitOrderService."""

import pytest

from limit_engine.models.errors import InsufficientBalanceError, OrderValidationError
from limit_engine.models.order import OrderDirection, OrderStatus
from limit_engine.orders import LimitOrderService
from limit_engine.storage import limit_order_repo, state_repo, user_repo
from limit_engine.tests.fakes import TOKEN_A, TOKEN_B, FakeBalanceProvider, FakePriceOracle

USER = 7
OTHER = 8


@pytest.fixture
def service(db_path):
    return LimitOrderService(
        db_path,
        balance_provider=FakeBalanceProvider({(USER, TOKEN_A): 100.0}),
        price_oracle=FakePriceOracle({TOKEN_A: 0.6}),
    )


class TestCreate:
    def test_creates_active_order(self, service, db):
        order = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.5 10", "AAA")
        assert order.status == OrderStatus.ACTIVE
        assert order.retry_count == 0
        assert order.amount == pytest.approx(20.0)
        assert order.total_value == pytest.approx(10.0)
        assert order.limit_price == 0.5
        assert order.last_observed_price == 0.6
        assert order.token_symbol == "AAA"
        assert limit_order_repo.get_order(db, order.id) == order

    def test_initial_price_optional(self, service):
        order = service.create_order(USER, OrderDirection.BUY, TOKEN_B, "0.5 10", "BBB")
        assert order.last_observed_price is None

    def test_symbol_defaults_to_address_prefix(self, service):
        order = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.5 10")
        assert order.token_symbol == TOKEN_A[:6]

    def test_invalid_input_not_persisted(self, service, db):
        with pytest.raises(OrderValidationError):
            service.create_order(USER, OrderDirection.BUY, TOKEN_A, "-1 10")
        with pytest.raises(InsufficientBalanceError):
            service.create_order(USER, OrderDirection.SELL, TOKEN_A, "0.1 100")
        assert limit_order_repo.list_orders_for_user(db, USER) == []

    def test_sell_percentage(self, service):
        order = service.create_order(USER, OrderDirection.SELL, TOKEN_A, "0.5 50%", "AAA")
        assert order.amount == pytest.approx(50.0)
        assert service.percentage_of_balance(order.amount, TOKEN_A, USER) == pytest.approx(50.0)


class TestCancel:
    def test_owner_can_cancel(self, service, db):
        order = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.5 10")
        assert service.cancel_order(order.id, USER) is True
        assert limit_order_repo.get_order(db, order.id).status == OrderStatus.CANCELLED

    def test_other_user_cannot_cancel(self, service, db):
        order = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.5 10")
        assert service.cancel_order(order.id, OTHER) is False
        assert limit_order_repo.get_order(db, order.id).status == OrderStatus.ACTIVE

    def test_unknown_order(self, service):
        assert service.cancel_order(12345, USER) is False

    def test_terminal_order_not_cancelled(self, service, db):
        order = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.5 10")
        limit_order_repo.transition_status(
            db, order.id, OrderStatus.ACTIVE, OrderStatus.FILLED, "sig",
        )
        assert service.cancel_order(order.id, USER) is False
        assert limit_order_repo.get_order(db, order.id).status == OrderStatus.FILLED

    def test_cancel_all(self, service):
        service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.5 10")
        service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.4 10")
        assert service.cancel_all_orders(USER) == 2
        assert service.list_orders(USER) == []
        assert service.cancel_all_orders(USER) == 0


class TestListing:
    def test_list_active_newest_first(self, service):
        first = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.5 10")
        second = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.4 10")
        cancelled = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.3 10")
        service.cancel_order(cancelled.id, USER)

        ids = [o.id for o in service.list_orders(USER)]
        assert ids == [second.id, first.id]
        assert service.list_orders(OTHER) == []

    def test_history_filtered(self, service):
        kept = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.5 10")
        gone = service.create_order(USER, OrderDirection.BUY, TOKEN_A, "0.4 10")
        service.cancel_order(gone.id, USER)

        assert len(service.order_history(USER)) == 2
        cancelled = service.order_history(USER, OrderStatus.CANCELLED)
        assert [o.id for o in cancelled] == [gone.id]
        assert service.get_order(kept.id).status == OrderStatus.ACTIVE


class TestWallet:
    def test_link_wallet(self, service, db):
        service.link_wallet(USER, "WalletPubkey111")
        assert user_repo.get_wallet_address(db, USER) == "WalletPubkey111"
        commands = state_repo.get_recent_operator_commands(db)
        assert commands[0]["command"] == "link_wallet"
