"""Initial schema: limit orders, execution ledger, wallets and operations tables."""

import sqlite3

DDL = [
    # Price-triggered orders; never deleted, terminal rows stay for history
    """
    CREATE TABLE IF NOT EXISTS limit_orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        token_address TEXT NOT NULL,
        token_symbol TEXT NOT NULL,
        direction TEXT NOT NULL CHECK (direction IN ('BUY', 'SELL')),
        limit_price REAL NOT NULL CHECK (limit_price > 0),
        amount REAL NOT NULL CHECK (amount > 0),
        total_value REAL NOT NULL,
        last_observed_price REAL,
        tx_reference TEXT,
        retry_count INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_limit_orders_user ON limit_orders(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_limit_orders_status ON limit_orders(status)",

    # One row per execution attempt, keyed by (order, attempt number)
    """
    CREATE TABLE IF NOT EXISTS execution_attempts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        idempotency_key TEXT UNIQUE NOT NULL,
        order_id INTEGER NOT NULL REFERENCES limit_orders(id),
        attempt INTEGER NOT NULL,
        amount REAL NOT NULL,
        reference_price REAL NOT NULL,
        success INTEGER,
        tx_reference TEXT,
        error_message TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        completed_at TEXT
    )
    """,
    (
        "CREATE INDEX IF NOT EXISTS idx_execution_attempts_order "
        "ON execution_attempts(order_id)"
    ),

    # Public wallet address per user, used for balance lookups
    """
    CREATE TABLE IF NOT EXISTS user_wallets (
        user_id INTEGER PRIMARY KEY,
        wallet_address TEXT NOT NULL,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # Scheduler cycle log
    """
    CREATE TABLE IF NOT EXISTS cycles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        cycle_id TEXT UNIQUE NOT NULL,
        mode TEXT NOT NULL,
        started_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        completed_at TEXT,
        status TEXT NOT NULL DEFAULT 'running',
        orders_checked INTEGER NOT NULL DEFAULT 0,
        instruments_checked INTEGER NOT NULL DEFAULT 0,
        instruments_skipped INTEGER NOT NULL DEFAULT 0,
        orders_triggered INTEGER NOT NULL DEFAULT 0,
        orders_filled INTEGER NOT NULL DEFAULT 0,
        orders_retried INTEGER NOT NULL DEFAULT 0,
        orders_failed INTEGER NOT NULL DEFAULT 0,
        error_message TEXT
    )
    """,

    # System state
    """
    CREATE TABLE IF NOT EXISTS system_state (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "INSERT OR IGNORE INTO system_state (key, value) VALUES ('paused', 'false')",

    # Operator command audit log
    """
    CREATE TABLE IF NOT EXISTS operator_commands (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        command TEXT NOT NULL,
        args TEXT NOT NULL DEFAULT '',
        result TEXT NOT NULL DEFAULT '',
        executed_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def up(conn: sqlite3.Connection) -> None:
    for stmt in DDL:
        conn.execute(stmt)
    conn.commit()
