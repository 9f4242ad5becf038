"""Limit order HTTP API: order intake, order listing, cycle log and pause controls."""

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from limit_engine.config.loader import load_config
from limit_engine.config.schema import EngineConfig
from limit_engine.factory import build_order_service
from limit_engine.models.errors import (
    BalanceUnavailableError,
    InsufficientBalanceError,
    OrderValidationError,
)
from limit_engine.models.order import LimitOrder, OrderDirection, OrderStatus
from limit_engine.orders import LimitOrderService
from limit_engine.storage import attempt_repo, limit_order_repo, state_repo
from limit_engine.storage.database import connect, run_migrations

DB_PATH = Path("data") / "engine.db"
CONFIG_PATH = Path("ops") / "configs" / "default.yaml"

app = FastAPI(title="Limit Order Engine", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _conn() -> sqlite3.Connection:
    conn = connect(DB_PATH)
    run_migrations(conn)
    return conn


def _config() -> EngineConfig:
    if CONFIG_PATH.exists():
        return load_config(CONFIG_PATH)
    return EngineConfig()


def _service() -> LimitOrderService:
    return build_order_service(_config(), DB_PATH)


def _order_to_dict(o: LimitOrder) -> dict:
    return {
        "id": o.id,
        "user_id": o.user_id,
        "token_address": o.token_address,
        "token_symbol": o.token_symbol,
        "direction": o.direction.value,
        "limit_price": o.limit_price,
        "amount": o.amount,
        "total_value": o.total_value,
        "last_observed_price": o.last_observed_price,
        "tx_reference": o.tx_reference,
        "retry_count": o.retry_count,
        "status": o.status.value,
        "created_at": o.created_at,
        "updated_at": o.updated_at,
    }


class OrderCreate(BaseModel):
    user_id: int
    direction: OrderDirection
    token_address: str = Field(min_length=1)
    token_symbol: str = ""
    text: str = Field(description="'<price> <volume>' or '<price> <pct>%'")


# ── Status ──────────────────────────────────────────────────────


@app.get("/api/status")
def get_status():
    """Pause flag, active order count and the latest cycle."""
    conn = _conn()
    try:
        active = conn.execute(
            "SELECT COUNT(*) FROM limit_orders WHERE status = ?",
            (OrderStatus.ACTIVE.value,),
        ).fetchone()[0]
        return {
            "paused": state_repo.is_paused(conn),
            "active_orders": active,
            "last_cycle": state_repo.get_latest_cycle(conn),
            "timestamp": datetime.now(UTC).isoformat(),
        }
    finally:
        conn.close()


@app.get("/api/cycles")
def get_cycles(limit: int = 50):
    conn = _conn()
    try:
        return state_repo.get_recent_cycles(conn, limit)
    finally:
        conn.close()


# ── Orders ──────────────────────────────────────────────────────


@app.get("/api/orders")
def get_orders(user_id: int, status: OrderStatus | None = None, history: bool = False):
    """A user's active orders, or their full history when history=true."""
    service = _service()
    if history or status is not None:
        orders = service.order_history(user_id, status)
    else:
        orders = service.list_orders(user_id)
    return [_order_to_dict(o) for o in orders]


@app.get("/api/orders/{order_id}")
def get_order_detail(order_id: int, user_id: int):
    """One of the user's orders with its execution attempts, oldest first."""
    conn = _conn()
    try:
        order = limit_order_repo.get_order(conn, order_id)
        if order is None or order.user_id != user_id:
            raise HTTPException(404, f"No order #{order_id} for user {user_id}")
        result = _order_to_dict(order)
        result["attempts"] = attempt_repo.get_attempts_for_order(conn, order_id)
        return result
    finally:
        conn.close()


@app.post("/api/orders", status_code=201)
def create_order(body: OrderCreate):
    service = _service()
    try:
        order = service.create_order(
            body.user_id, body.direction, body.token_address, body.text, body.token_symbol,
        )
    except InsufficientBalanceError as e:
        raise HTTPException(
            409,
            {"error": str(e), "required": e.required, "available": e.available},
        ) from e
    except OrderValidationError as e:
        raise HTTPException(400, str(e)) from e
    except BalanceUnavailableError as e:
        raise HTTPException(503, str(e)) from e

    result = _order_to_dict(order)
    if order.direction == OrderDirection.SELL:
        result["balance_pct"] = service.percentage_of_balance(
            order.amount, order.token_address, order.user_id,
        )
    return result


@app.delete("/api/orders/{order_id}")
def cancel_order(order_id: int, user_id: int):
    if not _service().cancel_order(order_id, user_id):
        raise HTTPException(404, f"No active order #{order_id} for user {user_id}")
    return {"status": "cancelled", "order_id": order_id}


@app.delete("/api/orders")
def cancel_all_orders(user_id: int):
    count = _service().cancel_all_orders(user_id)
    return {"status": "cancelled", "count": count}


# ── Control endpoints ───────────────────────────────────────────


@app.post("/api/control/pause")
def pause_engine():
    conn = _conn()
    try:
        state_repo.set_system_state(conn, "paused", "true")
        state_repo.log_operator_command(conn, "pause", args="api", result="paused")
        return {"status": "paused"}
    finally:
        conn.close()


@app.post("/api/control/resume")
def resume_engine():
    conn = _conn()
    try:
        state_repo.set_system_state(conn, "paused", "false")
        state_repo.log_operator_command(conn, "resume", args="api", result="resumed")
        return {"status": "resumed"}
    finally:
        conn.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8777)
