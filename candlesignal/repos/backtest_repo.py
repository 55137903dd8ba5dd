"""Backtest run repository — persists backtest summaries to SQLite."""

from candlesignal.backtest.engine import BacktestReport
from candlesignal.repos.db import get_connection


class BacktestRepo:
    """Data access layer for the ``backtest_runs`` table.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def insert_run(self, symbol: str, report: BacktestReport) -> int:
        """Persist a backtest run summary.  Returns the row id."""
        period = report.period.to_dict()
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO backtest_runs
                    (symbol, start_time, end_time, total_signals,
                     total_trades, wins, losses, win_rate,
                     avg_price_change_pct, max_consecutive_losses)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    symbol,
                    period["start"],
                    period["end"],
                    report.total_signals,
                    report.total_trades,
                    report.wins,
                    report.losses,
                    report.win_rate,
                    report.avg_price_change_pct,
                    report.max_consecutive_losses,
                ),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    def get_runs(self, limit: int = 10) -> list[dict]:
        """Return recent backtest run summaries."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM backtest_runs ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()
