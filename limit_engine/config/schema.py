"""Pydantic v2 configuration schema with strict validation."""

from enum import StrEnum

from pydantic import BaseModel, Field

from limit_engine.models.order import MAX_RETRIES

NATIVE_SOL_MINT = "So11111111111111111111111111111111111111112"


class ExecutionMode(StrEnum):
    DRY_RUN = "dry-run"
    LIVE = "live"


class SchedulerConfig(BaseModel):
    model_config = {"extra": "forbid"}

    interval_seconds: int = Field(default=30, ge=1)
    instrument_delay_ms: int = Field(default=200, ge=0)
    max_retries: int = Field(default=MAX_RETRIES, ge=0, le=MAX_RETRIES)


class PriceConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = "https://api.jup.ag/price/v2"
    vs_token: str = NATIVE_SOL_MINT
    timeout_seconds: float = Field(default=10.0, gt=0.0)


class BalanceConfig(BaseModel):
    model_config = {"extra": "forbid"}

    rpc_url: str = "https://api.mainnet-beta.solana.com"
    timeout_seconds: float = Field(default=10.0, gt=0.0)


class ExecutionConfig(BaseModel):
    model_config = {"extra": "forbid"}

    mode: ExecutionMode = ExecutionMode.DRY_RUN
    swap_api_url: str = "http://localhost:8080"
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class NotificationConfig(BaseModel):
    model_config = {"extra": "forbid"}

    enabled: bool = False
    telegram_bot_token: str = ""
    explorer_tx_url: str = "https://explorer.solana.com/tx/"


class EngineConfig(BaseModel):
    model_config = {"extra": "forbid"}

    scheduler: SchedulerConfig = SchedulerConfig()
    price: PriceConfig = PriceConfig()
    balance: BalanceConfig = BalanceConfig()
    execution: ExecutionConfig = ExecutionConfig()
    notifications: NotificationConfig = NotificationConfig()
