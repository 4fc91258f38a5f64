"""SQLite helpers shared by the record store and the health endpoints.

Provides reusable functions for:
- Opening connections with the standard pragmas
- Row counts for health checks
- A Python case-folding SQL function for search pushdown
"""

import sqlite3
from pathlib import Path
from typing import Any


def init_pragmas(conn: sqlite3.Connection) -> None:
    """Initialize SQLite reliability pragmas.

    - WAL mode so page reads don't block a concurrent write
    - NORMAL synchronous mode for speed without data loss
    - busy_timeout so concurrent writers wait instead of failing
    - foreign_keys left off: farm references are checked by the forms

    Args:
        conn: SQLite connection to configure
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA busy_timeout=5000")


def py_lower(value: Any) -> str | None:
    """SQL function ``py_lower(x)``: Python's ``str(x).lower()``, NULL stays NULL.

    SQLite's own ``lower()`` and ``LIKE`` fold ASCII letters only.
    """
    if value is None:
        return None
    return str(value).lower()


def open_connection(db_path: Path, timeout: float = 10.0) -> sqlite3.Connection:
    """Open a read-write connection with ``sqlite3.Row`` rows and pragmas.

    Registers ``py_lower`` for case-insensitive search.
    """
    conn = sqlite3.connect(str(db_path), timeout=timeout, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.create_function("py_lower", 1, py_lower, deterministic=True)
    init_pragmas(conn)
    return conn


def get_table_count(conn: sqlite3.Connection, table: str) -> int:
    """Get row count for a table.

    *table* is interpolated into the SQL and must come from code, never
    from user input.
    """
    result = conn.execute(f"SELECT COUNT(*) AS cnt FROM {table}").fetchone()
    return result[0] if result else 0
