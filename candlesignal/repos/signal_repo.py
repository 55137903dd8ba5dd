"""Signal repository — history of emitted signals in SQLite."""

from candlesignal.repos.db import get_connection
from candlesignal.strategy.models import Signal


class SignalRepo:
    """Data access layer for the ``signals`` table.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def insert_signal(self, signal: Signal) -> int:
        """Persist an emitted signal.  Returns the row id."""
        row = signal.to_dict()
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO signals
                    (symbol, direction, pattern, trend_confirmation,
                     timestamp, entry_price, bar_time)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    row["symbol"],
                    row["direction"],
                    row["pattern"],
                    row["trend_confirmation"],
                    row["timestamp"],
                    row["entry_price"],
                    row["bar_time"],
                ),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    def get_signals(self, limit: int = 50) -> list[dict]:
        """Return the most recent signals, newest first."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM signals ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()
