"""Tests for the live signal pipeline.

Verifies end-to-end flow: load bars → assemble → dedup → persist → notify.
Uses an in-memory bar source and a mock notifier.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from candlesignal.api.routers import get_pipeline_status
from candlesignal.config import Config
from candlesignal.dedup.deduplicator import Deduplicator
from candlesignal.dedup.store import InMemoryDedupStore
from candlesignal.pipeline import SignalPipeline
from candlesignal.repos.db import init_db
from candlesignal.repos.signal_repo import SignalRepo


_T0 = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
_NOW = datetime(2025, 1, 1, 10, 11, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_config(tmp_path, **overrides) -> Config:
    """Build a Config with sensible test defaults."""
    defaults = dict(
        symbol="EURUSD",
        short_timeframe="5m",
        long_timeframe="10m",
        expiry_minutes=10,
        trend_period=20,
        dedup_bucket_minutes=5,
        poll_interval_seconds=300,
        artifacts_dir=str(tmp_path / "artifacts"),
        data_dir=str(tmp_path / "artifacts" / "data"),
        dedup_cache_path=str(tmp_path / "artifacts" / "signals_sent.json"),
        chart_image_path=str(tmp_path / "artifacts" / "chart.png"),
        db_path=str(tmp_path / "test.db"),
        log_level="WARNING",
        health_port=3000,
    )
    defaults.update(overrides)
    return Config(**defaults)


def _raw(minutes: int, o: float, h: float, l: float, c: float) -> dict:
    return {"time": (_T0 + timedelta(minutes=minutes)).isoformat(), "o": o, "h": h, "l": l, "c": c}


def _short_raw() -> list[dict]:
    """Three 5m records ending in a bullish engulfing."""
    return [
        _raw(0, 1.1000, 1.1010, 1.0990, 1.1005),
        _raw(5, 1.1020, 1.1030, 1.0980, 1.0990),
        _raw(10, 1.0980, 1.1040, 1.0970, 1.1030),
    ]


def _long_raw(last_close: float = 1.01) -> list[dict]:
    rows = [_raw(10 * i, 1.0, 1.0, 1.0, 1.0) for i in range(19)]
    rows.append(_raw(190, 1.0, max(1.0, last_close), min(1.0, last_close), last_close))
    return rows


class _FakeSource:
    def __init__(self, short=None, long=None, error=None):
        self._data = {"5m": short or _short_raw(), "10m": long or _long_raw()}
        self._error = error

    def load(self, timeframe: str) -> list[dict]:
        if self._error is not None:
            raise self._error
        return self._data[timeframe]


def _make_pipeline(tmp_path, source=None, notifier=None, signal_repo=None, **cfg):
    return SignalPipeline(
        config=_make_config(tmp_path, **cfg),
        source=source or _FakeSource(),
        deduplicator=Deduplicator(InMemoryDedupStore()),
        notifier=notifier,
        signal_repo=signal_repo,
        clock=lambda: _NOW,
    )


# ── Tests ────────────────────────────────────────────────────────────────


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_signal_persisted_and_notified(self, tmp_path):
        notifier = AsyncMock()
        pipeline = _make_pipeline(tmp_path, notifier=notifier)

        result = await pipeline.run_once()

        assert result["action"] == "signal"
        assert result["signal"]["direction"] == "call"
        assert result["signal"]["pattern"] == "bullish_engulfing"

        saved = json.loads(pipeline.signals_path.read_text())
        assert len(saved) == 1
        assert saved[0]["timestamp"] == _NOW.isoformat()

        daily = tmp_path / "artifacts" / "reports" / "daily_2025-01-01.log"
        assert "EURUSD CALL Bullish Engulfing" in daily.read_text()

        notifier.send.assert_awaited_once()
        assert notifier.send.await_args.kwargs["image_path"] is None

    @pytest.mark.asyncio
    async def test_duplicate_skipped_before_side_effects(self, tmp_path):
        notifier = AsyncMock()
        pipeline = _make_pipeline(tmp_path, notifier=notifier)

        await pipeline.run_once()
        result = await pipeline.run_once()

        assert result["action"] == "duplicate"
        assert len(json.loads(pipeline.signals_path.read_text())) == 1
        assert notifier.send.await_count == 1

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_block(self, tmp_path):
        notifier = AsyncMock()
        notifier.send.side_effect = RuntimeError("telegram down")
        pipeline = _make_pipeline(tmp_path, notifier=notifier)

        result = await pipeline.run_once()

        assert result["action"] == "signal"
        assert pipeline.signals_path.exists()

    @pytest.mark.asyncio
    async def test_chart_image_attached_when_present(self, tmp_path):
        image = tmp_path / "chart.png"
        image.write_bytes(b"\x89PNG")
        notifier = AsyncMock()
        pipeline = _make_pipeline(tmp_path, notifier=notifier, chart_image_path=str(image))

        await pipeline.run_once()

        assert notifier.send.await_args.kwargs["image_path"] == image

    @pytest.mark.asyncio
    async def test_no_signal(self, tmp_path):
        pipeline = _make_pipeline(tmp_path, source=_FakeSource(long=_long_raw(1.0)))
        result = await pipeline.run_once()
        assert result == {"action": "no_signal"}
        assert not pipeline.signals_path.exists()

    @pytest.mark.asyncio
    async def test_source_failure(self, tmp_path):
        source = _FakeSource(error=FileNotFoundError("candles_5m.json"))
        result = await _make_pipeline(tmp_path, source=source).run_once()
        assert result["action"] == "no_data"

    @pytest.mark.asyncio
    async def test_signal_recorded_in_repo(self, tmp_path):
        db_path = str(tmp_path / "test.db")
        init_db(db_path)
        repo = SignalRepo(db_path)
        pipeline = _make_pipeline(tmp_path, signal_repo=repo)

        await pipeline.run_once()

        rows = repo.get_signals()
        assert len(rows) == 1
        assert rows[0]["pattern"] == "bullish_engulfing"


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_max_cycles(self, tmp_path):
        pipeline = _make_pipeline(tmp_path)
        results = await pipeline.run(poll_interval=0, max_cycles=2)

        assert [r["action"] for r in results] == ["signal", "duplicate"]
        assert pipeline.cycle_count == 2
        status = get_pipeline_status()
        assert status["cycle_count"] == 2
        assert status["last_signal"]["symbol"] == "EURUSD"

    @pytest.mark.asyncio
    async def test_cycle_error_is_logged_and_loop_continues(self, tmp_path):
        class _Broken:
            def load(self, timeframe):
                raise RuntimeError("boom")

        pipeline = _make_pipeline(tmp_path, source=_Broken())
        results = await pipeline.run(poll_interval=0, max_cycles=2)

        assert [r["action"] for r in results] == ["error", "error"]
        assert results[0]["reason"] == "boom"

    def test_stop(self, tmp_path):
        pipeline = _make_pipeline(tmp_path)
        pipeline.stop()
        assert pipeline._running is False
