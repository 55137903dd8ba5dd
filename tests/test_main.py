"""Tests for the CLI entry point."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from candlesignal.main import _run_cli
from candlesignal.repos.backtest_repo import BacktestRepo


_T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _record(minutes: int, price: float) -> dict:
    return {
        "time": (_T0 + timedelta(minutes=minutes)).isoformat(),
        "open": price, "high": price, "low": price, "close": price,
    }


@pytest.fixture
def env(monkeypatch, tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("ARTIFACTS_DIR", str(tmp_path / "artifacts"))
    monkeypatch.setenv("DATA_DIR", str(data_dir))
    monkeypatch.setenv("DB_PATH", str(tmp_path / "db" / "test.db"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    for var in ("TELEGRAM_TOKEN", "TELEGRAM_CHAT_ID", "SHORT_TIMEFRAME", "LONG_TIMEFRAME"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


def _write_candles(data_dir):
    short = [_record(5 * i, 1.1 + i * 0.0001) for i in range(60)]
    long = [_record(10 * i, 1.0 + i * 0.001) for i in range(40)]
    (data_dir / "candles_5m.json").write_text(json.dumps(short))
    (data_dir / "candles_10m.json").write_text(json.dumps({"candles": long}))


class TestBacktestMode:
    def test_writes_artifacts(self, env):
        _write_candles(env / "data")

        assert _run_cli(["--mode", "backtest"]) == 0

        results = json.loads((env / "artifacts" / "backtest-results.json").read_text())
        assert results["summary"]["total_signals"] == 9
        assert results["summary"]["wins"] == 8
        assert (env / "artifacts" / "backtest-report.html").exists()

        runs = BacktestRepo(str(env / "db" / "test.db")).get_runs()
        assert len(runs) == 1

    def test_output_dir_and_window(self, env):
        _write_candles(env / "data")
        out = env / "custom"

        assert _run_cli(["--mode", "backtest", "--end-index", "53", "--output-dir", str(out)]) == 0

        results = json.loads((out / "backtest-results.json").read_text())
        assert results["summary"]["total_signals"] == 3

    def test_missing_data_fails(self, env):
        assert _run_cli(["--mode", "backtest"]) == 1

    def test_insufficient_data_fails(self, env):
        data_dir = env / "data"
        (data_dir / "candles_5m.json").write_text(json.dumps([_record(0, 1.1)]))
        (data_dir / "candles_10m.json").write_text(json.dumps([_record(0, 1.1)]))
        assert _run_cli(["--mode", "backtest"]) == 1


class TestSignalMode:
    def test_single_cycle_without_data(self, env):
        assert _run_cli(["--mode", "signal"]) == 0

    def test_single_cycle_records_signal(self, env):
        data_dir = env / "data"
        short = [
            {"time": (_T0 + timedelta(minutes=0)).isoformat(), "o": 1.1000, "h": 1.1010, "l": 1.0990, "c": 1.1005},
            {"time": (_T0 + timedelta(minutes=5)).isoformat(), "o": 1.1020, "h": 1.1030, "l": 1.0980, "c": 1.0990},
            {"time": (_T0 + timedelta(minutes=10)).isoformat(), "o": 1.0980, "h": 1.1040, "l": 1.0970, "c": 1.1030},
        ]
        long = [_record(10 * i, 1.0) for i in range(19)] + [
            {"time": (_T0 + timedelta(minutes=190)).isoformat(),
             "open": 1.0, "high": 1.01, "low": 1.0, "close": 1.01},
        ]
        (data_dir / "candles_5m.json").write_text(json.dumps(short))
        (data_dir / "candles_10m.json").write_text(json.dumps(long))

        assert _run_cli(["--mode", "signal"]) == 0

        saved = json.loads((env / "artifacts" / "signals.json").read_text())
        assert saved[0]["pattern"] == "bullish_engulfing"
        assert json.loads((env / "artifacts" / "signals_sent.json").read_text())
