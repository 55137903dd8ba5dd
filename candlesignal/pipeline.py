"""candlesignal — live signal pipeline (orchestration loop).

One cycle: load bars → assemble signal → dedup → persist → notify.
Dedup is checked before any side effect.  Notifier failures are logged
and never block signal generation.
"""

import asyncio
import json
import logging
import pathlib
from datetime import datetime, timezone
from typing import Optional

from candlesignal.api.routers import update_pipeline_status
from candlesignal.config import Config
from candlesignal.data.loader import BarSource
from candlesignal.dedup.deduplicator import Deduplicator
from candlesignal.notify.base import Notifier
from candlesignal.repos.signal_repo import SignalRepo
from candlesignal.strategy.models import Signal
from candlesignal.strategy.signals import Clock, assemble_signal, utc_now

logger = logging.getLogger("candlesignal")

SIGNALS_FILENAME = "signals.json"


class SignalPipeline:
    """Runs the live signal cycle, once or on a polling loop.

    Args:
        config: Application configuration.
        source: Supplier of raw bars per timeframe.
        deduplicator: Suppresses repeated signals.
        notifier: Optional delivery channel (e.g. Telegram).
        signal_repo: Optional SQLite history of emitted signals.
        clock: Timestamp source for new signals (default: wall clock).
    """

    def __init__(
        self,
        config: Config,
        source: BarSource,
        deduplicator: Deduplicator,
        notifier: Optional[Notifier] = None,
        signal_repo: Optional[SignalRepo] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config
        self._source = source
        self._dedup = deduplicator
        self._notifier = notifier
        self._signal_repo = signal_repo
        self._clock = clock or utc_now
        self._running: bool = False
        self._cycle_count: int = 0

    @property
    def signals_path(self) -> pathlib.Path:
        return pathlib.Path(self._config.artifacts_dir) / SIGNALS_FILENAME

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    # ── Single cycle ─────────────────────────────────────────────────────

    async def run_once(self) -> dict:
        """Execute one evaluation cycle.

        Returns:
            Dict with ``action`` (``"no_data"``, ``"no_signal"``,
            ``"duplicate"`` or ``"signal"``) and, when a signal was
            assembled, ``signal`` as its artifact dict.
        """
        cfg = self._config
        try:
            short_raw = self._source.load(cfg.short_timeframe)
            long_raw = self._source.load(cfg.long_timeframe)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load candle data: %s", exc)
            return {"action": "no_data", "reason": str(exc)}

        logger.info(
            "Loaded %d %s and %d %s candles",
            len(short_raw), cfg.short_timeframe, len(long_raw), cfg.long_timeframe,
        )

        signal = assemble_signal(
            cfg.symbol, short_raw, long_raw,
            trend_period=cfg.trend_period, clock=self._clock,
        )
        if signal is None:
            logger.info("No valid signal at this time")
            return {"action": "no_signal"}

        if not self._dedup.should_emit(signal):
            logger.info(
                "Duplicate signal skipped: %s %s", signal.symbol, signal.pattern.label,
            )
            return {"action": "duplicate", "signal": signal.to_dict()}

        self._persist(signal)
        await self._notify(signal)
        return {"action": "signal", "signal": signal.to_dict()}

    # ── Loop ─────────────────────────────────────────────────────────────

    async def run(self, poll_interval: int | None = None, max_cycles: int = 0) -> list[dict]:
        """Run cycles until stopped.

        Args:
            poll_interval: Seconds between cycles (default from config).
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            List of per-cycle result dicts.
        """
        if poll_interval is None:
            poll_interval = self._config.poll_interval_seconds
        self._running = True
        results: list[dict] = []
        cycle = 0

        while self._running:
            cycle += 1
            self._cycle_count += 1
            try:
                result = await self.run_once()
                logger.info("Cycle %d: %s", cycle, result["action"])
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                result = {"action": "error", "reason": str(exc)}
            results.append(result)
            update_pipeline_status(
                cycle_count=self._cycle_count,
                last_run=datetime.now(timezone.utc),
                last_signal=result.get("signal") if result["action"] == "signal" else None,
            )

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep: checks _running every second
            for _ in range(poll_interval):
                if not self._running:
                    break
                await asyncio.sleep(1)

        self._running = False
        return results

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle."""
        self._running = False

    # ── Side effects ─────────────────────────────────────────────────────

    def _persist(self, signal: Signal) -> None:
        artifacts = pathlib.Path(self._config.artifacts_dir)
        artifacts.mkdir(parents=True, exist_ok=True)

        signals = self._read_signals()
        signals.append(signal.to_dict())
        self.signals_path.write_text(json.dumps(signals, indent=2), encoding="utf-8")

        reports = artifacts / "reports"
        reports.mkdir(parents=True, exist_ok=True)
        daily_log = reports / f"daily_{signal.timestamp.date().isoformat()}.log"
        with open(daily_log, "a", encoding="utf-8") as f:
            f.write(
                f"[{signal.timestamp.isoformat()}] {signal.symbol} "
                f"{signal.direction.value.upper()} {signal.pattern.label} | "
                f"{self._config.long_timeframe} confirmation: "
                f"{signal.trend_confirmation.value} trend\n"
            )

        if self._signal_repo is not None:
            self._signal_repo.insert_signal(signal)

        logger.info(
            "New signal: %s %s %s @ %.5f",
            signal.symbol, signal.direction.value.upper(),
            signal.pattern.label, signal.entry_price,
        )

    def _read_signals(self) -> list:
        path = self.signals_path
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Signals file %s unreadable (%s) — starting new list", path, exc)
            return []
        return data if isinstance(data, list) else []

    async def _notify(self, signal: Signal) -> None:
        if self._notifier is None:
            return
        image = pathlib.Path(self._config.chart_image_path)
        try:
            await self._notifier.send(signal, image_path=image if image.is_file() else None)
        except Exception as exc:
            logger.error("Failed to send signal notification: %s", exc)
