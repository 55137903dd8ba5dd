"""Dedup key stores — in-memory for single runs, JSON file for cross-run state."""

import json
import logging
import pathlib
from typing import Protocol, runtime_checkable


logger = logging.getLogger("candlesignal")


@runtime_checkable
class DedupStore(Protocol):
    """Set-like membership store for dedup keys."""

    def contains(self, key: str) -> bool:
        ...

    def add(self, key: str) -> None:
        ...


class InMemoryDedupStore:
    """Keys held in a set for the lifetime of the object."""

    def __init__(self) -> None:
        self._keys: set[str] = set()

    def contains(self, key: str) -> bool:
        return key in self._keys

    def add(self, key: str) -> None:
        self._keys.add(key)

    def __len__(self) -> int:
        return len(self._keys)


class FileDedupStore:
    """Keys persisted as a JSON list so suppression survives restarts.

    The file is read once on construction and rewritten after every
    ``add``.  A missing file starts empty; an unreadable one is logged and
    also starts empty.

    Args:
        path: Location of the JSON cache file.
    """

    def __init__(self, path: str | pathlib.Path) -> None:
        self._path = pathlib.Path(path)
        self._keys: set[str] = self._load()

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def contains(self, key: str) -> bool:
        return key in self._keys

    def add(self, key: str) -> None:
        if key in self._keys:
            return
        self._keys.add(key)
        self._save()

    def __len__(self) -> int:
        return len(self._keys)

    # ── Helpers ──────────────────────────────────────────────────────────

    def _load(self) -> set[str]:
        if not self._path.exists():
            return set()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Dedup cache %s unreadable (%s) — starting empty", self._path, exc)
            return set()
        if not isinstance(data, list):
            logger.warning("Dedup cache %s is not a JSON list — starting empty", self._path)
            return set()
        return {str(k) for k in data}

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(sorted(self._keys), indent=2), encoding="utf-8",
        )
