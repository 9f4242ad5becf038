"""Repository for limit orders.

Every status or retry write is conditional on the row still being ACTIVE, so a
concurrent cancellation is never overwritten. Writers get False/None back when
the order is no longer theirs to touch.
"""

import sqlite3

from limit_engine.models.order import LimitOrder, OrderDirection, OrderStatus


def create_order(
    conn: sqlite3.Connection,
    user_id: int,
    token_address: str,
    token_symbol: str,
    direction: OrderDirection,
    limit_price: float,
    amount: float,
    total_value: float,
    last_observed_price: float | None = None,
) -> int:
    """Persist a new ACTIVE order. Returns the order id."""
    cursor = conn.execute(
        "INSERT INTO limit_orders "
        "(user_id, token_address, token_symbol, direction, limit_price, amount, "
        "total_value, last_observed_price, status, retry_count) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0)",
        (
            user_id,
            token_address,
            token_symbol,
            direction.value,
            limit_price,
            amount,
            total_value,
            last_observed_price,
            OrderStatus.ACTIVE.value,
        ),
    )
    conn.commit()
    assert cursor.lastrowid is not None
    return cursor.lastrowid


def get_order(conn: sqlite3.Connection, order_id: int) -> LimitOrder | None:
    row = conn.execute(
        "SELECT * FROM limit_orders WHERE id = ?", (order_id,)
    ).fetchone()
    if row is None:
        return None
    return _row_to_order(row)


def list_active_orders(conn: sqlite3.Connection) -> list[LimitOrder]:
    """All ACTIVE orders across users, oldest first."""
    rows = conn.execute(
        "SELECT * FROM limit_orders WHERE status = ? ORDER BY created_at ASC, id ASC",
        (OrderStatus.ACTIVE.value,),
    ).fetchall()
    return [_row_to_order(r) for r in rows]


def list_active_orders_for_user(
    conn: sqlite3.Connection, user_id: int
) -> list[LimitOrder]:
    """A user's ACTIVE orders, newest first."""
    rows = conn.execute(
        "SELECT * FROM limit_orders WHERE user_id = ? AND status = ? "
        "ORDER BY created_at DESC, id DESC",
        (user_id, OrderStatus.ACTIVE.value),
    ).fetchall()
    return [_row_to_order(r) for r in rows]


def list_orders_for_user(
    conn: sqlite3.Connection, user_id: int, status: OrderStatus | None = None
) -> list[LimitOrder]:
    """A user's orders in any state, most recently updated first."""
    if status is None:
        rows = conn.execute(
            "SELECT * FROM limit_orders WHERE user_id = ? "
            "ORDER BY updated_at DESC, id DESC",
            (user_id,),
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM limit_orders WHERE user_id = ? AND status = ? "
            "ORDER BY updated_at DESC, id DESC",
            (user_id, status.value),
        ).fetchall()
    return [_row_to_order(r) for r in rows]


def update_observed_price(
    conn: sqlite3.Connection, order_id: int, price: float
) -> bool:
    """Record the latest market price seen for an ACTIVE order."""
    cursor = conn.execute(
        "UPDATE limit_orders SET last_observed_price = ?, updated_at = CURRENT_TIMESTAMP "
        "WHERE id = ? AND status = ?",
        (price, order_id, OrderStatus.ACTIVE.value),
    )
    conn.commit()
    return cursor.rowcount == 1


def transition_status(
    conn: sqlite3.Connection,
    order_id: int,
    expected_current: OrderStatus,
    new_status: OrderStatus,
    tx_reference: str | None = None,
) -> bool:
    """Compare-and-swap the order status.

    Returns False when the stored status no longer equals expected_current.
    """
    if expected_current.is_terminal:
        raise ValueError(f"Cannot transition out of terminal status {expected_current}")
    if new_status == expected_current:
        raise ValueError(f"Order is already {new_status}")

    if tx_reference is None:
        cursor = conn.execute(
            "UPDATE limit_orders SET status = ?, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = ? AND status = ?",
            (new_status.value, order_id, expected_current.value),
        )
    else:
        cursor = conn.execute(
            "UPDATE limit_orders SET status = ?, tx_reference = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ? AND status = ?",
            (new_status.value, tx_reference, order_id, expected_current.value),
        )
    conn.commit()
    return cursor.rowcount == 1


def increment_retry(
    conn: sqlite3.Connection, order_id: int, max_retries: int
) -> int | None:
    """Bump retry_count on an ACTIVE order below max_retries.

    Returns the new count, or None when the order is no longer ACTIVE or the
    bound is already reached.
    """
    cursor = conn.execute(
        "UPDATE limit_orders SET retry_count = retry_count + 1, "
        "updated_at = CURRENT_TIMESTAMP "
        "WHERE id = ? AND status = ? AND retry_count < ?",
        (order_id, OrderStatus.ACTIVE.value, max_retries),
    )
    conn.commit()
    if cursor.rowcount != 1:
        return None
    row = conn.execute(
        "SELECT retry_count FROM limit_orders WHERE id = ?", (order_id,)
    ).fetchone()
    return row[0]


def cancel_order(conn: sqlite3.Connection, order_id: int) -> bool:
    return transition_status(
        conn, order_id, OrderStatus.ACTIVE, OrderStatus.CANCELLED
    )


def cancel_all_orders_for_user(conn: sqlite3.Connection, user_id: int) -> int:
    """Cancel every ACTIVE order of a user. Returns how many were cancelled."""
    cursor = conn.execute(
        "UPDATE limit_orders SET status = ?, updated_at = CURRENT_TIMESTAMP "
        "WHERE user_id = ? AND status = ?",
        (OrderStatus.CANCELLED.value, user_id, OrderStatus.ACTIVE.value),
    )
    conn.commit()
    return cursor.rowcount


def _row_to_order(row: sqlite3.Row) -> LimitOrder:
    return LimitOrder(
        id=row["id"],
        user_id=row["user_id"],
        token_address=row["token_address"],
        token_symbol=row["token_symbol"],
        direction=OrderDirection(row["direction"]),
        limit_price=row["limit_price"],
        amount=row["amount"],
        total_value=row["total_value"],
        last_observed_price=row["last_observed_price"],
        tx_reference=row["tx_reference"],
        retry_count=row["retry_count"],
        status=OrderStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
