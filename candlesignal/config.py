"""candlesignal — application configuration.

Loads .env variables into a typed config object.
Validates numeric variables on startup.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


_POSITIVE_INT_VARS = {
    "EXPIRY_MINUTES": "10",
    "TREND_PERIOD": "20",
    "DEDUP_BUCKET_MINUTES": "5",
    "POLL_INTERVAL_SECONDS": "300",
    "HEALTH_PORT": "3000",
}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    symbol: str
    short_timeframe: str
    long_timeframe: str
    expiry_minutes: int
    trend_period: int
    dedup_bucket_minutes: int
    poll_interval_seconds: int
    artifacts_dir: str
    data_dir: str
    dedup_cache_path: str
    chart_image_path: str
    db_path: str
    log_level: str
    health_port: int
    telegram_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    @property
    def telegram_enabled(self) -> bool:
        """``True`` when both Telegram credentials are configured."""
        return bool(self.telegram_token and self.telegram_chat_id)


def _positive_int(name: str) -> int:
    raw = os.environ.get(name, _POSITIVE_INT_VARS[name])
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the offending variable when a numeric
    variable is not a positive integer.
    """
    load_dotenv(dotenv_path=env_path)

    artifacts_dir = os.environ.get("ARTIFACTS_DIR", "artifacts")
    return Config(
        symbol=os.environ.get("SYMBOL", "EURUSD"),
        short_timeframe=os.environ.get("SHORT_TIMEFRAME", "5m"),
        long_timeframe=os.environ.get("LONG_TIMEFRAME", "10m"),
        expiry_minutes=_positive_int("EXPIRY_MINUTES"),
        trend_period=_positive_int("TREND_PERIOD"),
        dedup_bucket_minutes=_positive_int("DEDUP_BUCKET_MINUTES"),
        poll_interval_seconds=_positive_int("POLL_INTERVAL_SECONDS"),
        artifacts_dir=artifacts_dir,
        data_dir=os.environ.get("DATA_DIR", os.path.join(artifacts_dir, "data")),
        dedup_cache_path=os.environ.get(
            "DEDUP_CACHE_PATH", os.path.join(artifacts_dir, "signals_sent.json"),
        ),
        chart_image_path=os.environ.get(
            "CHART_IMAGE_PATH", os.path.join(artifacts_dir, "chart.png"),
        ),
        db_path=os.environ.get("DB_PATH", "data/candlesignal.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        health_port=_positive_int("HEALTH_PORT"),
        telegram_token=os.environ.get("TELEGRAM_TOKEN") or None,
        telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID") or None,
    )


def dedup_cadence_mismatch(config: Config) -> Optional[str]:
    """Describe a mismatch between the dedup bucket and the polling interval.

    Returns ``None`` when the bucket width equals the poll interval.
    """
    bucket_seconds = config.dedup_bucket_minutes * 60
    if bucket_seconds == config.poll_interval_seconds:
        return None
    if bucket_seconds > config.poll_interval_seconds:
        effect = "new signals inside one bucket will be suppressed"
    else:
        effect = "a repeated signal may be emitted again in the next bucket"
    return (
        f"Dedup bucket ({config.dedup_bucket_minutes} min) differs from poll "
        f"interval ({config.poll_interval_seconds} s): {effect}"
    )
