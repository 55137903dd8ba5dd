"""Backtest engine — replays historical bars through signal assembly and simulation.

Both series are normalized once.  At each step *i* the assembler sees
only the short-term bars up to *i* and the long-term bars up to ``i // 2``
(the long-term series advances at half the short-term rate), cut to the
trailing windows the pattern and trend checks read.  The simulator is
then handed the bars from *i* up to the expiry bar.  No real orders are
placed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from candlesignal.backtest.simulator import (
    DEFAULT_EXPIRY_MINUTES,
    TradeOutcome,
    expiry_time_for,
    score_trade,
)
from candlesignal.backtest.stats import calculate_stats
from candlesignal.strategy.models import Bar, Signal
from candlesignal.strategy.normalizer import normalize_bars
from candlesignal.strategy.signals import MIN_BARS, evaluate_bars
from candlesignal.strategy.trend import DEFAULT_TREND_PERIOD


DEFAULT_START_INDEX = 50
# Bars required beyond ``start_index`` before a run is attempted.
MIN_FORWARD_BARS = 10


@dataclass(frozen=True)
class BacktestPeriod:
    start: Optional[datetime]
    end: Optional[datetime]
    duration: str

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class TradeRecord:
    """A signal together with its simulated outcome."""

    signal: Signal
    outcome: TradeOutcome

    def to_dict(self) -> dict:
        return {**self.signal.to_dict(), "trade": self.outcome.to_dict()}


@dataclass(frozen=True)
class BacktestReport:
    """Aggregate result of a completed backtest run."""

    total_signals: int
    total_trades: int
    wins: int
    losses: int
    invalid: int
    win_rate: float
    avg_price_change_pct: float
    max_consecutive_losses: int
    period: BacktestPeriod
    signals: list[Signal] = field(default_factory=list)
    trades: list[TradeRecord] = field(default_factory=list)

    @property
    def summary(self) -> dict:
        return {
            "total_signals": self.total_signals,
            "total_trades": self.total_trades,
            "wins": self.wins,
            "losses": self.losses,
            "invalid": self.invalid,
            "win_rate": self.win_rate,
            "avg_price_change_pct": self.avg_price_change_pct,
            "max_consecutive_losses": self.max_consecutive_losses,
        }

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "signals": [s.to_dict() for s in self.signals],
            "trades": [t.to_dict() for t in self.trades],
            "period": self.period.to_dict(),
        }


@dataclass(frozen=True)
class BacktestError:
    """Returned instead of a report when a run cannot be performed."""

    error: str

    def to_dict(self) -> dict:
        return {"error": self.error}


class BacktestEngine:
    """Simulates the signal strategy on historical bar data.

    Args:
        symbol: Instrument name stamped on generated signals.
        expiry_minutes: Binary option expiry used to score each signal.
        trend_period: SMA lookback for the long-term trend filter.
    """

    def __init__(
        self,
        symbol: str = "EURUSD",
        expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
        trend_period: int = DEFAULT_TREND_PERIOD,
    ) -> None:
        if expiry_minutes <= 0:
            raise ValueError(f"expiry_minutes must be positive, got {expiry_minutes}")
        self._symbol = symbol
        self._expiry_minutes = expiry_minutes
        self._trend_period = trend_period

    # ── Public API ───────────────────────────────────────────────────────

    def run(
        self,
        short_bars: list,
        long_bars: list,
        start_index: int = DEFAULT_START_INDEX,
        end_index: Optional[int] = None,
    ) -> Union[BacktestReport, BacktestError]:
        """Execute a full backtest.

        Args:
            short_bars: Pattern-timeframe bars, oldest-first.
            long_bars: Confirmation-timeframe bars, oldest-first.
            start_index: First short-term index evaluated.
            end_index: Exclusive upper bound of evaluated indices
                (default and maximum: the last index).

        Returns:
            ``BacktestReport``, or ``BacktestError`` when fewer than
            ``start_index + 10`` usable short-term bars are supplied or the
            index range is empty.
        """
        if start_index < 0:
            raise ValueError(f"start_index must not be negative, got {start_index}")

        short = normalize_bars(short_bars)
        long = normalize_bars(long_bars)

        if len(short) < start_index + MIN_FORWARD_BARS:
            return BacktestError("Insufficient data for backtest")

        last_index = len(short) - 1
        end_idx = last_index if end_index is None else min(end_index, last_index)
        if end_idx <= start_index:
            return BacktestError("Empty backtest window")

        signals: list[Signal] = []
        trades: list[TradeRecord] = []
        long_window = max(self._trend_period, MIN_BARS)

        for i in range(start_index, end_idx):
            bar_time = short[i].time
            long_end = i // 2 + 1
            signal = evaluate_bars(
                self._symbol,
                short[max(0, i - MIN_BARS + 1) : i + 1],
                long[max(0, long_end - long_window) : long_end],
                trend_period=self._trend_period,
                clock=lambda: bar_time,
            )
            if signal is None:
                continue

            signals.append(signal)
            outcome = score_trade(
                signal,
                _expiry_window(short, i, expiry_time_for(signal, self._expiry_minutes)),
                self._expiry_minutes,
            )
            trades.append(TradeRecord(signal=signal, outcome=outcome))

        stats = calculate_stats([t.outcome for t in trades])
        return BacktestReport(
            total_signals=len(signals),
            total_trades=stats["total_trades"],
            wins=stats["wins"],
            losses=stats["losses"],
            invalid=stats["invalid"],
            win_rate=stats["win_rate"],
            avg_price_change_pct=stats["avg_price_change_pct"],
            max_consecutive_losses=stats["max_consecutive_losses"],
            period=_make_period(short[start_index].time, short[end_idx].time),
            signals=signals,
            trades=trades,
        )


def run_backtest(
    short_bars: list,
    long_bars: list,
    symbol: str = "EURUSD",
    expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
    start_index: int = DEFAULT_START_INDEX,
    end_index: Optional[int] = None,
) -> Union[BacktestReport, BacktestError]:
    """Convenience wrapper around ``BacktestEngine.run``."""
    engine = BacktestEngine(symbol=symbol, expiry_minutes=expiry_minutes)
    return engine.run(short_bars, long_bars, start_index=start_index, end_index=end_index)


def _make_period(start: datetime, end: datetime) -> BacktestPeriod:
    hours = round((end - start).total_seconds() / 3600)
    return BacktestPeriod(start=start, end=end, duration=f"{hours} hours")


def _expiry_window(bars: list[Bar], start: int, expiry_time: datetime) -> list[Bar]:
    """Bars from *start* up to and including the first one reaching *expiry_time*.

    Empty when no bar reaches it.
    """
    for k in range(start, len(bars)):
        if bars[k].time >= expiry_time:
            return bars[start : k + 1]
    return []
