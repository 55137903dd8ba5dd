"""Tests for candlesignal.strategy.signals — pattern + trend confirmation."""

from datetime import datetime, timedelta, timezone

import pytest

from candlesignal.strategy.models import Bar, Direction, PatternKind, Signal, TrendBias
from candlesignal.strategy.signals import assemble_signal, evaluate_bars


_T0 = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
_NOW = datetime(2025, 1, 1, 10, 16, 30, tzinfo=timezone.utc)


def _fixed_clock() -> datetime:
    return _NOW


def _make_bar(i: int, o: float, h: float, l: float, c: float, step: int = 5) -> Bar:
    return Bar(time=_T0 + timedelta(minutes=step * i), open=o, high=h, low=l, close=c)


def _short_bullish_engulfing() -> list[Bar]:
    return [
        _make_bar(0, 1.1000, 1.1010, 1.0990, 1.1005),
        _make_bar(1, 1.1020, 1.1030, 1.0980, 1.0990),
        _make_bar(2, 1.0980, 1.1040, 1.0970, 1.1030),
    ]


def _short_bearish_engulfing() -> list[Bar]:
    return [
        _make_bar(0, 1.1000, 1.1010, 1.0990, 1.1005),
        _make_bar(1, 1.0990, 1.1030, 1.0980, 1.1020),
        _make_bar(2, 1.1030, 1.1040, 1.0970, 1.0980),
    ]


def _short_no_pattern() -> list[Bar]:
    return [
        _make_bar(0, 1.1000, 1.1050, 1.0990, 1.1020),
        _make_bar(1, 1.1020, 1.1070, 1.1010, 1.1040),
        _make_bar(2, 1.1040, 1.1090, 1.1030, 1.1060),
    ]


def _long_series(last_close: float) -> list[Bar]:
    """20 flat 10m bars at 1.0 followed by a move to *last_close*."""
    bars = [_make_bar(i, 1.0, 1.0, 1.0, 1.0, step=10) for i in range(19)]
    bars.append(
        _make_bar(19, 1.0, max(1.0, last_close), min(1.0, last_close), last_close, step=10)
    )
    return bars


class TestAssembleSignal:
    def test_call_confirmed_by_bullish_trend(self):
        short = _short_bullish_engulfing()
        signal = assemble_signal("EURUSD", short, _long_series(1.01), clock=_fixed_clock)
        assert isinstance(signal, Signal)
        assert signal.symbol == "EURUSD"
        assert signal.direction is Direction.CALL
        assert signal.pattern is PatternKind.BULLISH_ENGULFING
        assert signal.trend_confirmation is TrendBias.BULLISH
        assert signal.entry_price == pytest.approx(1.1030)
        assert signal.timestamp == _NOW
        assert signal.bar_time == short[-1].time

    def test_put_confirmed_by_bearish_trend(self):
        signal = assemble_signal(
            "EURUSD", _short_bearish_engulfing(), _long_series(0.99), clock=_fixed_clock,
        )
        assert signal is not None
        assert signal.direction is Direction.PUT
        assert signal.pattern is PatternKind.BEARISH_ENGULFING
        assert signal.trend_confirmation is TrendBias.BEARISH

    def test_counter_trend_pattern_rejected(self):
        assert assemble_signal("EURUSD", _short_bullish_engulfing(), _long_series(0.99)) is None
        assert assemble_signal("EURUSD", _short_bearish_engulfing(), _long_series(1.01)) is None

    def test_neutral_trend_confirms_nothing(self):
        assert assemble_signal("EURUSD", _short_bullish_engulfing(), _long_series(1.0)) is None
        assert assemble_signal("EURUSD", _short_bearish_engulfing(), _long_series(1.0)) is None

    def test_short_long_series_is_neutral(self):
        long = _long_series(1.01)[-5:]
        assert assemble_signal("EURUSD", _short_bullish_engulfing(), long) is None

    def test_no_pattern(self):
        assert assemble_signal("EURUSD", _short_no_pattern(), _long_series(1.01)) is None

    def test_insufficient_bars(self):
        assert assemble_signal("EURUSD", _short_bullish_engulfing()[1:], _long_series(1.01)) is None
        assert assemble_signal("EURUSD", _short_bullish_engulfing(), _long_series(1.01)[:2]) is None
        assert assemble_signal("EURUSD", [], []) is None
        assert assemble_signal("EURUSD", None, None) is None

    def test_malformed_bars_count_against_minimum(self):
        short = [
            {"time": "2025-01-01T10:00:00Z", "o": 1.1, "h": 1.0, "l": 1.2, "c": 1.1},
        ] + _short_bullish_engulfing()[1:]
        assert assemble_signal("EURUSD", short, _long_series(1.01)) is None

    def test_accepts_raw_records(self):
        raw = [
            {
                "time": b.time.isoformat(),
                "open": b.open, "high": b.high, "low": b.low, "close": b.close,
            }
            for b in _short_bullish_engulfing()
        ]
        signal = assemble_signal("GBPUSD", raw, _long_series(1.01), clock=_fixed_clock)
        assert signal is not None
        assert signal.symbol == "GBPUSD"

    def test_deterministic_with_frozen_clock(self):
        args = ("EURUSD", _short_bullish_engulfing(), _long_series(1.01))
        assert assemble_signal(*args, clock=_fixed_clock) == assemble_signal(*args, clock=_fixed_clock)

    def test_wall_clock_timestamp_is_utc(self):
        signal = assemble_signal("EURUSD", _short_bullish_engulfing(), _long_series(1.01))
        assert signal.timestamp.tzinfo is not None

    def test_to_dict_shape(self):
        signal = assemble_signal(
            "EURUSD", _short_bullish_engulfing(), _long_series(1.01), clock=_fixed_clock,
        )
        data = signal.to_dict()
        assert data["direction"] == "call"
        assert data["pattern"] == "bullish_engulfing"
        assert data["pattern_label"] == "Bullish Engulfing"
        assert data["trend_confirmation"] == "bullish"
        assert data["timestamp"] == "2025-01-01T10:16:30+00:00"
        assert set(data) == {
            "symbol", "direction", "pattern", "pattern_label",
            "trend_confirmation", "timestamp", "entry_price", "bar_time",
        }


class TestEvaluateBars:
    def test_trailing_windows_match_full_history(self):
        short = _short_no_pattern() + _short_bullish_engulfing()
        long = [_make_bar(i, 1.0, 1.0, 1.0, 1.0, step=10) for i in range(10)] + _long_series(1.01)

        full = evaluate_bars("EURUSD", short, long, clock=_fixed_clock)
        windowed = evaluate_bars("EURUSD", short[-3:], long[-20:], clock=_fixed_clock)

        assert full is not None
        assert full == windowed
        assert full.pattern is PatternKind.BULLISH_ENGULFING

    def test_matches_assemble_signal(self):
        args = ("EURUSD", _short_bearish_engulfing(), _long_series(0.99))
        assert evaluate_bars(*args, clock=_fixed_clock) == assemble_signal(*args, clock=_fixed_clock)

    def test_too_few_bars(self):
        assert evaluate_bars("EURUSD", _short_bullish_engulfing()[1:], _long_series(1.01)) is None
