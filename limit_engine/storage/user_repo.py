"""Repository for the public wallet address linked to each user."""

import sqlite3


def link_wallet(conn: sqlite3.Connection, user_id: int, wallet_address: str) -> None:
    conn.execute(
        "INSERT INTO user_wallets (user_id, wallet_address, updated_at) "
        "VALUES (?, ?, CURRENT_TIMESTAMP) "
        "ON CONFLICT(user_id) DO UPDATE SET wallet_address = excluded.wallet_address, "
        "updated_at = CURRENT_TIMESTAMP",
        (user_id, wallet_address),
    )
    conn.commit()


def get_wallet_address(conn: sqlite3.Connection, user_id: int) -> str | None:
    row = conn.execute(
        "SELECT wallet_address FROM user_wallets WHERE user_id = ?", (user_id,)
    ).fetchone()
    if row is None:
        return None
    return row[0]
