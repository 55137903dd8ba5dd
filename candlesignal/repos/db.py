"""Database initialization and connection management."""

import pathlib
import sqlite3


_SCHEMA = """
CREATE TABLE IF NOT EXISTS signals (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol             TEXT NOT NULL,
    direction          TEXT NOT NULL,
    pattern            TEXT NOT NULL,
    trend_confirmation TEXT NOT NULL,
    timestamp          TEXT NOT NULL,
    entry_price        REAL NOT NULL,
    bar_time           TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS backtest_runs (
    id                     INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol                 TEXT NOT NULL,
    start_time             TEXT,
    end_time               TEXT,
    total_signals          INTEGER NOT NULL,
    total_trades           INTEGER NOT NULL,
    wins                   INTEGER NOT NULL,
    losses                 INTEGER NOT NULL,
    win_rate               REAL NOT NULL,
    avg_price_change_pct   REAL NOT NULL,
    max_consecutive_losses INTEGER NOT NULL,
    created_at             TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


def init_db(db_path: str) -> None:
    """Create the ``signals`` and ``backtest_runs`` tables if missing.

    Args:
        db_path: Path to the SQLite database file (or ``":memory:"``).
    """
    if db_path != ":memory:":
        pathlib.Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(_SCHEMA)
    finally:
        conn.close()


def get_connection(db_path: str) -> sqlite3.Connection:
    """Return a new SQLite connection with row-factory enabled.

    Callers are responsible for closing the connection.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn
