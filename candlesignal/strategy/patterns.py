"""Candlestick reversal patterns — pure predicates, no I/O.

Single-bar predicates take a ``Bar``; multi-bar predicates take the bar
sequence and the index of the bar completing the pattern.  Sequences are
ordered oldest-first.
"""

from typing import Optional

from candlesignal.strategy.models import Bar, PatternKind, PatternMatch


DEFAULT_DOJI_THRESHOLD = 0.001

# Hammer / shooting-star proportions, as fractions of the bar range.
MAX_BODY_RATIO = 0.3
MIN_LONG_SHADOW_RATIO = 0.6
MAX_SHORT_SHADOW_RATIO = 0.1

# Middle bar of a star pattern must have a body below this fraction of its range.
STAR_BODY_RATIO = 0.3


def is_bullish(bar: Bar) -> bool:
    return bar.close > bar.open


def is_bearish(bar: Bar) -> bool:
    return bar.close < bar.open


def is_doji(bar: Bar, threshold: float = DEFAULT_DOJI_THRESHOLD) -> bool:
    """Body no larger than *threshold* × range.

    A zero-range bar is a doji (``0 <= 0``).
    """
    return bar.body <= bar.range * threshold


def is_bullish_engulfing(bars: list[Bar], index: int) -> bool:
    """Bearish bar followed by a bullish bar whose body strictly contains it."""
    if index < 1:
        return False
    prev, curr = bars[index - 1], bars[index]
    return (
        is_bearish(prev)
        and is_bullish(curr)
        and curr.open < prev.close
        and curr.close > prev.open
    )


def is_bearish_engulfing(bars: list[Bar], index: int) -> bool:
    """Bullish bar followed by a bearish bar whose body strictly contains it."""
    if index < 1:
        return False
    prev, curr = bars[index - 1], bars[index]
    return (
        is_bullish(prev)
        and is_bearish(curr)
        and curr.open > prev.close
        and curr.close < prev.open
    )


def is_hammer(bar: Bar) -> bool:
    """Small body near the top, long lower shadow, little or no upper shadow."""
    total = bar.range
    return (
        bar.body <= total * MAX_BODY_RATIO
        and bar.lower_shadow >= total * MIN_LONG_SHADOW_RATIO
        and bar.upper_shadow <= total * MAX_SHORT_SHADOW_RATIO
    )


def is_shooting_star(bar: Bar) -> bool:
    """Small body near the bottom, long upper shadow, little or no lower shadow."""
    total = bar.range
    return (
        bar.body <= total * MAX_BODY_RATIO
        and bar.upper_shadow >= total * MIN_LONG_SHADOW_RATIO
        and bar.lower_shadow <= total * MAX_SHORT_SHADOW_RATIO
    )


def _is_star_body(bar: Bar) -> bool:
    return is_doji(bar) or bar.body < bar.range * STAR_BODY_RATIO


def is_morning_star(bars: list[Bar], index: int) -> bool:
    """Bearish, small-bodied, then bullish closing above the first body's midpoint."""
    if index < 2:
        return False
    first, second, third = bars[index - 2], bars[index - 1], bars[index]
    return (
        is_bearish(first)
        and _is_star_body(second)
        and is_bullish(third)
        and third.close > first.midpoint
    )


def is_evening_star(bars: list[Bar], index: int) -> bool:
    """Bullish, small-bodied, then bearish closing below the first body's midpoint."""
    if index < 2:
        return False
    first, second, third = bars[index - 2], bars[index - 1], bars[index]
    return (
        is_bullish(first)
        and _is_star_body(second)
        and is_bearish(third)
        and third.close < first.midpoint
    )


# Checked in this order; the first hit wins.
PATTERN_CHECKS = (
    (PatternKind.BULLISH_ENGULFING, is_bullish_engulfing),
    (PatternKind.HAMMER, lambda bars, i: is_hammer(bars[i])),
    (PatternKind.MORNING_STAR, is_morning_star),
    (PatternKind.BEARISH_ENGULFING, is_bearish_engulfing),
    (PatternKind.SHOOTING_STAR, lambda bars, i: is_shooting_star(bars[i])),
    (PatternKind.EVENING_STAR, is_evening_star),
)


def classify_pattern(bars: list[Bar], index: Optional[int] = None) -> Optional[PatternMatch]:
    """Return the first pattern completing at *index* (default: last bar).

    Returns ``None`` for an empty sequence, an out-of-range index, or when
    no pattern matches.
    """
    if not bars:
        return None
    if index is None:
        index = len(bars) - 1
    if not 0 <= index < len(bars):
        return None

    for kind, check in PATTERN_CHECKS:
        if check(bars, index):
            return PatternMatch(kind=kind, direction=kind.direction, index=index)
    return None
