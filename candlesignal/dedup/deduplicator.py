"""Signal deduplication keyed by (symbol, pattern, time bucket).

The bucket width should equal the interval between pipeline runs: a wider
bucket suppresses genuinely new signals, a narrower one lets repeats of
the same event through.  Nothing here enforces that coupling; see
``candlesignal.config.dedup_cadence_mismatch``.
"""

from datetime import datetime, timedelta, timezone

from candlesignal.dedup.store import DedupStore
from candlesignal.strategy.models import Signal


DEFAULT_BUCKET_MINUTES = 5

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def bucket_start(timestamp: datetime, bucket_minutes: int = DEFAULT_BUCKET_MINUTES) -> datetime:
    """Truncate *timestamp* to the start of its *bucket_minutes* window (UTC)."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    width = timedelta(minutes=bucket_minutes)
    offset = (timestamp - _EPOCH) // width
    return _EPOCH + offset * width


def dedup_key(signal: Signal, bucket_minutes: int = DEFAULT_BUCKET_MINUTES) -> str:
    """Return the ``symbol_pattern_bucket`` key for *signal*."""
    bucket = bucket_start(signal.timestamp, bucket_minutes)
    return f"{signal.symbol}_{signal.pattern.value}_{bucket.isoformat()}"


class Deduplicator:
    """Accepts each logical signal at most once per bucket.

    Args:
        store: Backing key store (in-memory or file-backed).
        bucket_minutes: Width of the dedup time bucket.
    """

    def __init__(self, store: DedupStore, bucket_minutes: int = DEFAULT_BUCKET_MINUTES) -> None:
        if bucket_minutes <= 0:
            raise ValueError(f"bucket_minutes must be positive, got {bucket_minutes}")
        self._store = store
        self._bucket_minutes = bucket_minutes

    @property
    def bucket_minutes(self) -> int:
        return self._bucket_minutes

    def should_emit(self, signal: Signal) -> bool:
        """Return ``True`` and record the key the first time it is seen."""
        key = dedup_key(signal, self._bucket_minutes)
        if self._store.contains(key):
            return False
        self._store.add(key)
        return True
