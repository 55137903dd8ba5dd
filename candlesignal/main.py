"""candlesignal — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
signal, backtest, and serve modes.
"""

import logging
import sys

from fastapi import FastAPI

from candlesignal.api.routers import router

app = FastAPI(title="candlesignal Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("candlesignal")


# ── Wiring ───────────────────────────────────────────────────────────────


def build_pipeline(config):
    """Assemble a ``SignalPipeline`` from *config*."""
    from candlesignal.data.loader import JsonFileBarSource
    from candlesignal.dedup.deduplicator import Deduplicator
    from candlesignal.dedup.store import FileDedupStore
    from candlesignal.notify.telegram import TelegramNotifier
    from candlesignal.pipeline import SignalPipeline
    from candlesignal.repos.signal_repo import SignalRepo

    notifier = None
    if config.telegram_enabled:
        notifier = TelegramNotifier(
            config.telegram_token,
            config.telegram_chat_id,
            expiry_minutes=config.expiry_minutes,
            confirm_timeframe=config.long_timeframe,
        )
    else:
        logger.warning("Telegram credentials not set — signals will not be sent.")

    return SignalPipeline(
        config=config,
        source=JsonFileBarSource(config.data_dir),
        deduplicator=Deduplicator(
            FileDedupStore(config.dedup_cache_path),
            bucket_minutes=config.dedup_bucket_minutes,
        ),
        notifier=notifier,
        signal_repo=SignalRepo(config.db_path),
    )


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio

    from candlesignal.config import dedup_cadence_mismatch, load_config
    from candlesignal.repos.db import init_db

    parser = argparse.ArgumentParser(description="Candlestick reversal signal bot")
    parser.add_argument(
        "--mode",
        choices=["signal", "backtest", "serve"],
        default="signal",
        help="Run mode (default: signal)",
    )
    parser.add_argument("--expiry", type=int, help="Backtest expiry in minutes")
    parser.add_argument("--start-index", type=int, default=50, help="First backtest bar index")
    parser.add_argument("--end-index", type=int, help="Backtest end bar index (exclusive)")
    parser.add_argument("--output-dir", help="Backtest artifact directory")
    args = parser.parse_args(argv)

    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    init_db(config.db_path)

    if args.mode == "backtest":
        return _run_backtest(
            config,
            expiry_minutes=args.expiry or config.expiry_minutes,
            start_index=args.start_index,
            end_index=args.end_index,
            output_dir=args.output_dir or config.artifacts_dir,
        )

    warning = dedup_cadence_mismatch(config)
    if warning:
        logger.warning(warning)

    pipeline = build_pipeline(config)
    if args.mode == "serve":
        asyncio.run(_run_server_and_pipeline(config, pipeline))
    else:
        result = asyncio.run(pipeline.run_once())
        logger.info("Signal cycle finished: %s", result["action"])
    return 0


async def _run_server_and_pipeline(config, pipeline) -> None:
    """Start the API server and the polling pipeline concurrently."""
    import asyncio
    import uvicorn

    from candlesignal.api.routers import configure_routers
    from candlesignal.data.loader import JsonFileBarSource
    from candlesignal.repos.backtest_repo import BacktestRepo
    from candlesignal.repos.signal_repo import SignalRepo

    configure_routers(
        signal_repo=SignalRepo(config.db_path),
        backtest_repo=BacktestRepo(config.db_path),
        bar_source=JsonFileBarSource(config.data_dir),
        timeframes=(config.short_timeframe, config.long_timeframe),
    )

    uvi_config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=config.health_port,
        log_level=config.log_level.lower(),
    )
    server = uvicorn.Server(uvi_config)

    logger.info(
        "Starting candlesignal for %s: API on port %d, polling every %ds",
        config.symbol, config.health_port, config.poll_interval_seconds,
    )

    async def _run_server():
        await server.serve()
        pipeline.stop()

    results = await asyncio.gather(
        _run_server(),
        pipeline.run(),
        return_exceptions=True,
    )
    logger.info("candlesignal stopped. Results: %s", results[0])


def _run_backtest(config, expiry_minutes, start_index, end_index, output_dir) -> int:
    """Load historical candles and run a backtest."""
    from candlesignal.backtest.engine import BacktestEngine, BacktestError
    from candlesignal.backtest.report import save_backtest_results
    from candlesignal.data.loader import JsonFileBarSource
    from candlesignal.repos.backtest_repo import BacktestRepo

    source = JsonFileBarSource(config.data_dir)
    try:
        short_raw = source.load(config.short_timeframe)
        long_raw = source.load(config.long_timeframe)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load candle data: %s", exc)
        return 1

    engine = BacktestEngine(
        symbol=config.symbol,
        expiry_minutes=expiry_minutes,
        trend_period=config.trend_period,
    )
    report = engine.run(short_raw, long_raw, start_index=start_index, end_index=end_index)
    if isinstance(report, BacktestError):
        logger.error("Backtest failed: %s", report.error)
        return 1

    save_backtest_results(report, output_dir)
    BacktestRepo(config.db_path).insert_run(config.symbol, report)
    logger.info(
        "Backtest complete: %d signals, %d trades, win rate %.2f%%, "
        "max consecutive losses %d",
        report.total_signals,
        report.total_trades,
        report.win_rate,
        report.max_consecutive_losses,
    )
    return 0


def main() -> None:
    sys.exit(_run_cli())


if __name__ == "__main__":
    main()
