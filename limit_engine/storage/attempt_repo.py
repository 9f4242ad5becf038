"""Repository for execution attempts, the ledger behind idempotent execution."""

import sqlite3

from limit_engine.models.execution import TradeResult


def save_attempt(
    conn: sqlite3.Connection,
    idempotency_key: str,
    order_id: int,
    attempt: int,
    amount: float,
    reference_price: float,
) -> bool:
    """Record an attempt before dispatching it.

    Returns False if an attempt with this key already exists, which happens
    when a previous cycle executed but could not record the outcome.
    """
    cursor = conn.execute(
        "INSERT INTO execution_attempts "
        "(idempotency_key, order_id, attempt, amount, reference_price) "
        "VALUES (?, ?, ?, ?, ?) "
        "ON CONFLICT(idempotency_key) DO NOTHING",
        (idempotency_key, order_id, attempt, amount, reference_price),
    )
    conn.commit()
    return cursor.rowcount == 1


def save_attempt_result(
    conn: sqlite3.Connection, idempotency_key: str, result: TradeResult
) -> None:
    conn.execute(
        "UPDATE execution_attempts SET success = ?, tx_reference = ?, "
        "error_message = ?, completed_at = CURRENT_TIMESTAMP "
        "WHERE idempotency_key = ?",
        (
            1 if result.success else 0,
            result.tx_reference,
            result.error or "",
            idempotency_key,
        ),
    )
    conn.commit()


def get_successful_attempt(conn: sqlite3.Connection, order_id: int) -> dict | None:
    """Latest attempt for an order whose trade went through, if any."""
    row = conn.execute(
        "SELECT * FROM execution_attempts WHERE order_id = ? AND success = 1 "
        "ORDER BY attempt DESC LIMIT 1",
        (order_id,),
    ).fetchone()
    if row is None:
        return None
    return dict(row)


def get_attempts_for_order(conn: sqlite3.Connection, order_id: int) -> list[dict]:
    rows = conn.execute(
        "SELECT * FROM execution_attempts WHERE order_id = ? ORDER BY attempt ASC",
        (order_id,),
    ).fetchall()
    return [dict(r) for r in rows]
