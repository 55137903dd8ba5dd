"""Bar sources — where raw candle records come from.

The strategy only depends on ordered raw records per timeframe; any
scraper, replay file or synthetic generator can satisfy ``BarSource``.
"""

import json
import logging
import pathlib
from typing import Protocol, runtime_checkable


logger = logging.getLogger("candlesignal")


@runtime_checkable
class BarSource(Protocol):
    """Supplies raw bar records for a timeframe, oldest-first."""

    def load(self, timeframe: str) -> list[dict]:
        ...


class JsonFileBarSource:
    """Reads ``candles_{timeframe}.json`` files from a directory.

    Each file holds either a JSON list of records or an object with a
    ``"candles"`` list.

    Args:
        data_dir: Directory containing the candle files.
    """

    def __init__(self, data_dir: str | pathlib.Path) -> None:
        self._data_dir = pathlib.Path(data_dir)

    def path_for(self, timeframe: str) -> pathlib.Path:
        return self._data_dir / f"candles_{timeframe}.json"

    def load(self, timeframe: str) -> list[dict]:
        """Return the raw records for *timeframe*.

        Raises ``OSError`` if the file cannot be read and ``ValueError``
        if it does not contain a candle list.
        """
        path = self.path_for(timeframe)
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("candles")
        if not isinstance(data, list):
            raise ValueError(f"{path} does not contain a candle list")
        logger.debug("Loaded %d %s candles from %s", len(data), timeframe, path)
        return data
