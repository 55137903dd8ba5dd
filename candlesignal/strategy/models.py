"""Strategy data models — typed representations for bars, patterns and signals."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class Bar:
    """A single normalized OHLC candlestick bar.

    ``time`` is always a timezone-aware UTC ``datetime``.
    """

    time: datetime
    open: float
    high: float
    low: float
    close: float

    @property
    def body(self) -> float:
        """Absolute size of the candle body."""
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        """Distance from low to high."""
        return self.high - self.low

    @property
    def upper_shadow(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_shadow(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def midpoint(self) -> float:
        """Midpoint of the body (not of the range)."""
        return (self.open + self.close) / 2

    def is_consistent(self) -> bool:
        """``True`` when ``low <= min(open, close) <= max(open, close) <= high``."""
        return self.low <= min(self.open, self.close) and max(self.open, self.close) <= self.high


class Direction(str, Enum):
    """Binary trade direction."""

    CALL = "call"
    PUT = "put"


class TrendBias(str, Enum):
    """Coarse directional bias of a bar window."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class PatternKind(str, Enum):
    """Catalogue of detectable reversal patterns."""

    BULLISH_ENGULFING = "bullish_engulfing"
    BEARISH_ENGULFING = "bearish_engulfing"
    HAMMER = "hammer"
    SHOOTING_STAR = "shooting_star"
    MORNING_STAR = "morning_star"
    EVENING_STAR = "evening_star"

    @property
    def label(self) -> str:
        """Human-readable name, e.g. ``"Bullish Engulfing"``."""
        return self.value.replace("_", " ").title()

    @property
    def direction(self) -> Direction:
        """Trade direction implied by the pattern."""
        if self in _BULLISH_PATTERNS:
            return Direction.CALL
        return Direction.PUT


_BULLISH_PATTERNS = frozenset(
    {PatternKind.BULLISH_ENGULFING, PatternKind.HAMMER, PatternKind.MORNING_STAR}
)

# Trend bias required to confirm each direction.
CONFIRMING_BIAS: dict[Direction, TrendBias] = {
    Direction.CALL: TrendBias.BULLISH,
    Direction.PUT: TrendBias.BEARISH,
}


@dataclass(frozen=True)
class PatternMatch:
    """A pattern detected at ``index`` of a bar sequence."""

    kind: PatternKind
    direction: Direction
    index: int


@dataclass(frozen=True)
class Signal:
    """A trend-confirmed trade signal."""

    symbol: str
    direction: Direction
    pattern: PatternKind
    trend_confirmation: TrendBias
    timestamp: datetime
    entry_price: float
    bar_time: datetime

    def to_dict(self) -> dict:
        """Stable artifact shape used in JSON files and notifications."""
        return {
            "symbol": self.symbol,
            "direction": self.direction.value,
            "pattern": self.pattern.value,
            "pattern_label": self.pattern.label,
            "trend_confirmation": self.trend_confirmation.value,
            "timestamp": self.timestamp.isoformat(),
            "entry_price": self.entry_price,
            "bar_time": self.bar_time.isoformat(),
        }
