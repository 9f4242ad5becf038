"""Shared test fixtures."""

import sqlite3
from pathlib import Path

import pytest
import yaml

from limit_engine.config.schema import EngineConfig, SchedulerConfig
from limit_engine.models.order import LimitOrder, OrderDirection
from limit_engine.storage import limit_order_repo
from limit_engine.storage.database import connect, run_migrations
from limit_engine.tests.fakes import (
    TOKEN_A,
    FakeNotifier,
    FakePriceOracle,
    FakeTradeExecutor,
)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path: Path) -> sqlite3.Connection:
    conn = connect(db_path)
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def default_config() -> EngineConfig:
    """Defaults with no pause between instruments."""
    return EngineConfig(scheduler=SchedulerConfig(instrument_delay_ms=0))


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "scheduler": {"interval_seconds": 5, "instrument_delay_ms": 0},
        "execution": {"mode": "dry-run"},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


@pytest.fixture
def oracle() -> FakePriceOracle:
    return FakePriceOracle()


@pytest.fixture
def executor() -> FakeTradeExecutor:
    return FakeTradeExecutor()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def make_order(db):
    """Insert an ACTIVE order directly and return it."""

    def _make(
        direction: OrderDirection = OrderDirection.BUY,
        limit_price: float = 1.0,
        amount: float = 10.0,
        token_address: str = TOKEN_A,
        user_id: int = 42,
        token_symbol: str = "AAA",
    ) -> LimitOrder:
        order_id = limit_order_repo.create_order(
            db,
            user_id=user_id,
            token_address=token_address,
            token_symbol=token_symbol,
            direction=direction,
            limit_price=limit_price,
            amount=amount,
            total_value=amount * limit_price,
        )
        order = limit_order_repo.get_order(db, order_id)
        assert order is not None
        return order

    return _make
