"""Binary trade simulation — decides a signal's outcome at expiry.

The outcome is decided by the close of the first bar at or after
``signal.timestamp + expiry``.  Equal prices are a loss in both
directions; a win needs strict improvement.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from candlesignal.strategy.models import Bar, Direction, Signal
from candlesignal.strategy.normalizer import normalize_bars


DEFAULT_EXPIRY_MINUTES = 10


def expiry_time_for(signal: Signal, expiry_minutes: int) -> datetime:
    return signal.timestamp + timedelta(minutes=expiry_minutes)


class TradeResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    INVALID = "invalid"


@dataclass(frozen=True)
class TradeOutcome:
    """Result of one simulated binary trade."""

    result: TradeResult
    entry_price: float
    expiry_price: Optional[float]
    price_change: Optional[float]
    price_change_pct: Optional[float]
    entry_time: datetime
    expiry_time: datetime
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "result": self.result.value,
            "entry_price": self.entry_price,
            "expiry_price": self.expiry_price,
            "price_change": self.price_change,
            "price_change_pct": self.price_change_pct,
            "entry_time": self.entry_time.isoformat(),
            "expiry_time": self.expiry_time.isoformat(),
            "reason": self.reason,
        }


def simulate_trade(
    signal: Signal,
    forward_bars: list,
    expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
) -> TradeOutcome:
    """Score *signal* against the bars that follow it.

    Args:
        signal: The signal being traded; its ``entry_price`` is used as-is.
        forward_bars: Bars from the signal bar onward (raw or ``Bar``).
        expiry_minutes: Minutes from the signal timestamp to expiry.

    Returns:
        ``TradeOutcome``; ``INVALID`` when no bar reaches the expiry time.

    Raises ``ValueError`` if *expiry_minutes* is not positive.
    """
    bars = normalize_bars(forward_bars) if forward_bars else []
    return score_trade(signal, bars, expiry_minutes)


def score_trade(
    signal: Signal,
    bars: list[Bar],
    expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
) -> TradeOutcome:
    """Same as ``simulate_trade`` for bars that are already normalized."""
    if expiry_minutes <= 0:
        raise ValueError(f"expiry_minutes must be positive, got {expiry_minutes}")

    entry_time = signal.timestamp
    expiry_time = expiry_time_for(signal, expiry_minutes)
    entry_price = signal.entry_price

    expiry_bar = next((b for b in bars if b.time >= expiry_time), None)

    if expiry_bar is None:
        return TradeOutcome(
            result=TradeResult.INVALID,
            entry_price=entry_price,
            expiry_price=None,
            price_change=None,
            price_change_pct=None,
            entry_time=entry_time,
            expiry_time=expiry_time,
            reason="no expiry candle",
        )

    expiry_price = expiry_bar.close
    if signal.direction is Direction.CALL:
        won = expiry_price > entry_price
    else:
        won = expiry_price < entry_price

    change = expiry_price - entry_price
    return TradeOutcome(
        result=TradeResult.WIN if won else TradeResult.LOSS,
        entry_price=entry_price,
        expiry_price=expiry_price,
        price_change=change,
        price_change_pct=(change / entry_price) * 100 if entry_price else 0.0,
        entry_time=entry_time,
        expiry_time=expiry_time,
    )
