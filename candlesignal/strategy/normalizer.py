"""Bar normalization — coerces raw broker records into canonical ``Bar`` objects.

Pure functions, no I/O.  Each canonical field is looked up through a small
alias table in fixed priority order.  Records that cannot be coerced are
dropped individually; the batch as a whole never fails for bad data.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from candlesignal.strategy.models import Bar


FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "time": ("time", "timestamp", "date", "t"),
    "open": ("open", "o"),
    "high": ("high", "h"),
    "low": ("low", "l"),
    "close": ("close", "c"),
}

# Epoch values above this are taken to be milliseconds.
_EPOCH_MS_THRESHOLD = 1e11


def normalize_bars(raw_bars: list) -> list[Bar]:
    """Coerce *raw_bars* into a list of ``Bar``, preserving order.

    Accepts ``Bar`` instances (kept as-is when consistent) and mappings
    carrying the aliased OHLC/time fields.  Records with a missing field,
    a non-finite price, an unparsable time, or prices violating
    ``low <= open, close <= high`` are skipped.

    Raises ``TypeError`` if *raw_bars* is not a list or tuple.
    """
    if not isinstance(raw_bars, (list, tuple)):
        raise TypeError(
            f"normalize_bars expects a list of records, got {type(raw_bars).__name__}"
        )

    bars: list[Bar] = []
    for record in raw_bars:
        bar = _coerce_record(record)
        if bar is not None:
            bars.append(bar)
    return bars


def _coerce_record(record: Any) -> Optional[Bar]:
    if isinstance(record, Bar):
        return record if record.is_consistent() else None
    if not isinstance(record, dict):
        return None

    time = _parse_time(_lookup(record, "time"))
    if time is None:
        return None

    prices: dict[str, float] = {}
    for name in ("open", "high", "low", "close"):
        value = _parse_price(_lookup(record, name))
        if value is None:
            return None
        prices[name] = value

    bar = Bar(time=time, **prices)
    if not bar.is_consistent():
        return None
    return bar


def _lookup(record: dict, field: str) -> Any:
    """Return the first non-null value among *field*'s aliases."""
    for alias in FIELD_ALIASES[field]:
        value = record.get(alias)
        if value is not None:
            return value
    return None


def _parse_price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _parse_time(value: Any) -> Optional[datetime]:
    """Parse ISO strings, datetimes and epoch seconds/milliseconds to aware UTC.

    Epoch values may arrive as numbers or as digit strings.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        seconds = value / 1000.0 if abs(value) > _EPOCH_MS_THRESHOLD else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            pass
        else:
            return _parse_time(number)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return _parse_time(parsed)

    return None
