"""Trend detection — SMA-based directional bias with a deadband.

The most recent close is compared against the simple moving average of
the trailing *period* closes.  Prices within ±0.1 % of the average are
treated as directionless so the bias does not flip on noise.
"""

from candlesignal.strategy.indicators import calculate_sma
from candlesignal.strategy.models import Bar, TrendBias


DEFAULT_TREND_PERIOD = 20
UPPER_BAND = 1.001
LOWER_BAND = 0.999


def estimate_trend(bars: list[Bar], period: int = DEFAULT_TREND_PERIOD) -> TrendBias:
    """Classify the trend of *bars* (oldest-first).

    Rules:
        - fewer than *period* bars → ``NEUTRAL``
        - close > SMA × 1.001 → ``BULLISH``
        - close < SMA × 0.999 → ``BEARISH``
        - otherwise ``NEUTRAL``

    Raises ``ValueError`` if *period* is not positive.
    """
    if period <= 0:
        raise ValueError(f"Trend period must be positive, got {period}")
    if len(bars) < period:
        return TrendBias.NEUTRAL

    mean = calculate_sma(bars, period)
    current = bars[-1].close

    if current > mean * UPPER_BAND:
        return TrendBias.BULLISH
    if current < mean * LOWER_BAND:
        return TrendBias.BEARISH
    return TrendBias.NEUTRAL
