"""Technical indicators — pure functions, no I/O."""

from candlesignal.strategy.models import Bar


def calculate_sma(bars: list[Bar], period: int) -> float:
    """Simple moving average of the last *period* closes.

    Raises ``ValueError`` if *period* is not positive or fewer than
    *period* bars are provided.
    """
    if period <= 0:
        raise ValueError(f"SMA period must be positive, got {period}")
    if len(bars) < period:
        raise ValueError(
            f"Need at least {period} bars for SMA({period}), got {len(bars)}"
        )

    recent = bars[-period:]
    return sum(b.close for b in recent) / period
