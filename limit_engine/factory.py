"""Wires config into concrete collaborators."""

import logging
from pathlib import Path

from limit_engine.config.schema import EngineConfig, ExecutionMode
from limit_engine.execution.dry_run import DryRunTradeExecutor
from limit_engine.execution.live_adapter import LiveTradeExecutor
from limit_engine.execution.swap_client import SwapClient
from limit_engine.ingest.balance_client import SolanaRpcClient, WalletBalanceProvider
from limit_engine.ingest.price_client import PriceClient
from limit_engine.interfaces import BalanceProvider, Notifier, PriceOracle, TradeExecutor
from limit_engine.orders import LimitOrderService
from limit_engine.reporting.notifiers import LogNotifier, TelegramNotifier
from limit_engine.scheduler import ExecutionScheduler

logger = logging.getLogger(__name__)


def build_price_oracle(config: EngineConfig) -> PriceOracle:
    return PriceClient(
        base_url=config.price.base_url,
        vs_token=config.price.vs_token,
        timeout=config.price.timeout_seconds,
    )


def build_trade_executor(config: EngineConfig) -> TradeExecutor:
    if config.execution.mode == ExecutionMode.LIVE:
        logger.warning("LIVE execution mode: triggered orders will trade real funds")
        return LiveTradeExecutor(
            SwapClient(
                base_url=config.execution.swap_api_url,
                timeout=config.execution.timeout_seconds,
            )
        )
    return DryRunTradeExecutor()


def build_notifier(config: EngineConfig) -> Notifier:
    if not config.notifications.enabled:
        return LogNotifier()
    return TelegramNotifier(bot_token=config.notifications.telegram_bot_token or None)


def build_balance_provider(config: EngineConfig, db_path: str | Path) -> BalanceProvider:
    rpc = SolanaRpcClient(
        rpc_url=config.balance.rpc_url, timeout=config.balance.timeout_seconds,
    )
    return WalletBalanceProvider(rpc, db_path)


def build_scheduler(config: EngineConfig, db_path: str | Path) -> ExecutionScheduler:
    return ExecutionScheduler(
        config,
        db_path,
        price_oracle=build_price_oracle(config),
        trade_executor=build_trade_executor(config),
        notifier=build_notifier(config),
    )


def build_order_service(config: EngineConfig, db_path: str | Path) -> LimitOrderService:
    return LimitOrderService(
        db_path,
        balance_provider=build_balance_provider(config, db_path),
        price_oracle=build_price_oracle(config),
    )
