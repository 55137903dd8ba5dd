"""Internal API routers — /health, /signals, /backtests endpoints.

No business logic. Delegates to repos and shared pipeline status.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Query

logger = logging.getLogger("candlesignal")
router = APIRouter()

# Candle files older than this are reported as stale.
DATA_MAX_AGE_SECONDS = 300

# ── Shared state (set during app startup) ────────────────────────────────

_started_monotonic = time.monotonic()
_signal_repo = None    # Set via configure_routers()
_backtest_repo = None  # Set via configure_routers()
_bar_source = None     # Set via configure_routers()
_timeframes: tuple[str, ...] = ()
_pipeline_status: dict = {
    "cycle_count": 0,
    "last_run": None,
    "last_signal": None,
}


def configure_routers(
    signal_repo=None,
    backtest_repo=None,
    bar_source=None,
    timeframes: tuple[str, ...] = (),
) -> None:
    """Inject repositories and the candle file source used by the endpoints."""
    global _signal_repo, _backtest_repo, _bar_source, _timeframes
    _signal_repo = signal_repo
    _backtest_repo = backtest_repo
    _bar_source = bar_source
    _timeframes = tuple(timeframes)


def update_pipeline_status(
    cycle_count: int,
    last_run: datetime,
    last_signal: Optional[dict] = None,
) -> None:
    """Called by the pipeline after each cycle."""
    _pipeline_status["cycle_count"] = cycle_count
    _pipeline_status["last_run"] = last_run.isoformat()
    if last_signal is not None:
        _pipeline_status["last_signal"] = last_signal


def get_pipeline_status() -> dict:
    return dict(_pipeline_status)


def _data_status() -> dict:
    """Freshness of the candle files, judged by their modification time."""
    if _bar_source is None:
        return {"status": "unknown"}

    latest: Optional[float] = None
    for timeframe in _timeframes:
        try:
            mtime = _bar_source.path_for(timeframe).stat().st_mtime
        except OSError:
            continue
        latest = mtime if latest is None else max(latest, mtime)

    if latest is None:
        return {"status": "warning", "message": "No candle files found"}

    last_update = datetime.fromtimestamp(latest, tz=timezone.utc).isoformat()
    if time.time() - latest > DATA_MAX_AGE_SECONDS:
        return {
            "status": "warning",
            "message": "No recent candle data",
            "last_update": last_update,
        }
    return {"status": "ok", "last_update": last_update}


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/health")
async def health():
    """Liveness check with pipeline progress and candle data freshness."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_seconds": round(time.monotonic() - _started_monotonic, 1),
        "last_run": _pipeline_status["last_run"],
        "cycle_count": _pipeline_status["cycle_count"],
        "data": _data_status(),
    }


@router.get("/signals")
async def list_signals(limit: int = Query(50, ge=1, le=500)):
    """Most recently emitted signals, newest first."""
    if _signal_repo is None:
        return {"signals": []}
    return {"signals": _signal_repo.get_signals(limit=limit)}


@router.get("/backtests")
async def list_backtests(limit: int = Query(10, ge=1, le=100)):
    """Most recent backtest run summaries."""
    if _backtest_repo is None:
        return {"backtests": []}
    return {"backtests": _backtest_repo.get_runs(limit=limit)}
