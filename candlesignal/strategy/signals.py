"""Signal assembly — pure functions, no I/O.

Combines the pattern found on the last short-term bar with the trend of
the long-term series.  A signal is produced only when both agree:

* ``call`` requires a **bullish** long-term trend.
* ``put`` requires a **bearish** long-term trend.
* A **neutral** trend confirms nothing.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from candlesignal.strategy.models import CONFIRMING_BIAS, Bar, Signal
from candlesignal.strategy.normalizer import normalize_bars
from candlesignal.strategy.patterns import classify_pattern
from candlesignal.strategy.trend import DEFAULT_TREND_PERIOD, estimate_trend


MIN_BARS = 3

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def assemble_signal(
    symbol: str,
    short_bars: list,
    long_bars: list,
    trend_period: int = DEFAULT_TREND_PERIOD,
    clock: Optional[Clock] = None,
) -> Optional[Signal]:
    """Evaluate the most recent short-term bar for a trend-confirmed signal.

    Args:
        symbol: Instrument name stamped on the signal.
        short_bars: Pattern timeframe, raw records or ``Bar`` objects.
        long_bars: Confirmation timeframe, raw records or ``Bar`` objects.
        trend_period: SMA lookback for the confirmation trend.
        clock: Returns the signal timestamp; defaults to the wall clock.

    Returns:
        ``Signal`` if a pattern is found and confirmed, else ``None``.
        Fewer than 3 usable bars in either series also yields ``None``.
    """
    if not short_bars or not long_bars:
        return None
    return evaluate_bars(
        symbol,
        normalize_bars(short_bars),
        normalize_bars(long_bars),
        trend_period=trend_period,
        clock=clock,
    )


def evaluate_bars(
    symbol: str,
    short: list[Bar],
    long: list[Bar],
    trend_period: int = DEFAULT_TREND_PERIOD,
    clock: Optional[Clock] = None,
) -> Optional[Signal]:
    """Same as ``assemble_signal`` for series that are already normalized.

    Only the last ``MIN_BARS`` short bars and the last
    ``max(trend_period, MIN_BARS)`` long bars are inspected, so callers
    may pass trailing windows instead of full histories.
    """
    if len(short) < MIN_BARS or len(long) < MIN_BARS:
        return None

    match = classify_pattern(short)
    if match is None:
        return None

    bias = estimate_trend(long, trend_period)
    if CONFIRMING_BIAS[match.direction] != bias:
        return None

    last = short[match.index]
    return Signal(
        symbol=symbol,
        direction=match.direction,
        pattern=match.kind,
        trend_confirmation=bias,
        timestamp=(clock or utc_now)(),
        entry_price=last.close,
        bar_time=last.time,
    )
