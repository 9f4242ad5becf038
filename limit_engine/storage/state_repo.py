"""Repository for system state, operator commands, and cycle tracking."""

import sqlite3

# --- System state ---

def get_system_state(conn: sqlite3.Connection, key: str) -> str | None:
    """Get a system state value."""
    row = conn.execute(
        "SELECT value FROM system_state WHERE key = ?", (key,)
    ).fetchone()
    if row is None:
        return None
    return row[0]


def set_system_state(conn: sqlite3.Connection, key: str, value: str) -> None:
    """Set a system state value."""
    conn.execute(
        "INSERT INTO system_state (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
        (key, value),
    )
    conn.commit()


def is_paused(conn: sqlite3.Connection) -> bool:
    return get_system_state(conn, "paused") == "true"


# --- Operator commands ---

def log_operator_command(
    conn: sqlite3.Connection, command: str, args: str = "", result: str = ""
) -> int:
    """Log an operator command for audit."""
    cursor = conn.execute(
        "INSERT INTO operator_commands (command, args, result) VALUES (?, ?, ?)",
        (command, args, result),
    )
    conn.commit()
    assert cursor.lastrowid is not None
    return cursor.lastrowid


def get_recent_operator_commands(
    conn: sqlite3.Connection, limit: int = 20
) -> list[dict]:
    rows = conn.execute(
        "SELECT * FROM operator_commands ORDER BY executed_at DESC, id DESC LIMIT ?",
        (limit,),
    ).fetchall()
    return [dict(r) for r in rows]


# --- Cycles ---

def create_cycle(conn: sqlite3.Connection, cycle_id: str, mode: str) -> None:
    """Record the start of a scheduler cycle."""
    conn.execute(
        "INSERT INTO cycles (cycle_id, mode) VALUES (?, ?)",
        (cycle_id, mode),
    )
    conn.commit()


def complete_cycle(
    conn: sqlite3.Connection,
    cycle_id: str,
    status: str,
    error_message: str | None = None,
    **metrics: int | None,
) -> None:
    """Record cycle completion with counters."""
    sets = ["completed_at = CURRENT_TIMESTAMP", "status = ?"]
    params: list = [status]

    if error_message is not None:
        sets.append("error_message = ?")
        params.append(error_message)
    for key, val in metrics.items():
        if val is not None:
            sets.append(f"{key} = ?")
            params.append(val)

    params.append(cycle_id)
    conn.execute(f"UPDATE cycles SET {', '.join(sets)} WHERE cycle_id = ?", params)
    conn.commit()


def get_latest_cycle(conn: sqlite3.Connection) -> dict | None:
    row = conn.execute(
        "SELECT * FROM cycles ORDER BY started_at DESC, id DESC LIMIT 1"
    ).fetchone()
    if row is None:
        return None
    return dict(row)


def get_recent_cycles(conn: sqlite3.Connection, limit: int = 50) -> list[dict]:
    rows = conn.execute(
        "SELECT * FROM cycles ORDER BY started_at DESC, id DESC LIMIT ?",
        (limit,),
    ).fetchall()
    return [dict(r) for r in rows]
