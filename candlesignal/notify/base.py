"""Notifier protocol — delivers accepted signals to the outside world."""

from __future__ import annotations

import pathlib
from typing import Optional, Protocol, runtime_checkable

from candlesignal.strategy.models import Signal


@runtime_checkable
class Notifier(Protocol):
    """Interface that all signal notifiers must satisfy."""

    async def send(self, signal: Signal, image_path: Optional[pathlib.Path] = None) -> None:
        """Deliver *signal*, optionally with a chart image attached."""
        ...
