"""Telegram Bot API notifier.

Sends one message per signal via ``sendMessage``, or ``sendPhoto`` with
the chart image as caption when an image is available.
"""

import asyncio
import html
import logging
import pathlib
from typing import Optional

import httpx

from candlesignal.strategy.models import Signal

logger = logging.getLogger("candlesignal")

_API_BASE = "https://api.telegram.org"

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


def format_signal_message(
    signal: Signal,
    expiry_minutes: int = 10,
    confirm_timeframe: str = "10m",
) -> str:
    """Build the HTML message body for *signal*."""
    signal_id = f"SIG-{signal.symbol}-{int(signal.timestamp.timestamp())}"
    lines = [
        f"<b>Binary option signal — {expiry_minutes} min expiry</b>",
        f"Pair: {html.escape(signal.symbol)}",
        f"Direction: {signal.direction.value.upper()}",
        f"Pattern: {signal.pattern.label}",
        f"Confirmation ({html.escape(confirm_timeframe)}): {signal.trend_confirmation.value} trend",
        f"Entry price: {signal.entry_price:.5f}",
        f"Time: {signal.timestamp.isoformat()}",
        f"Signal ID: {signal_id}",
    ]
    return "\n".join(lines)


class TelegramNotifier:
    """Async client for the Telegram Bot API.

    Args:
        token: Bot token.
        chat_id: Destination chat.
        expiry_minutes: Expiry quoted in the message text.
        confirm_timeframe: Confirmation timeframe quoted in the message text.
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        expiry_minutes: int = 10,
        confirm_timeframe: str = "10m",
    ) -> None:
        if not token or not chat_id:
            raise ValueError("TelegramNotifier requires both a token and a chat id")
        self._base_url = f"{_API_BASE}/bot{token}"
        self._chat_id = chat_id
        self._expiry_minutes = expiry_minutes
        self._confirm_timeframe = confirm_timeframe

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _post_with_retry(self, method: str, **kwargs) -> httpx.Response:
        """POST to a Bot API method with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        url = f"{self._base_url}/{method}"
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.post(url, timeout=30.0, **kwargs)

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "Telegram %s returned %d — retry %d/%d in %.1fs",
                        method, resp.status_code, attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "Telegram %s transport error (%s) — retry %d/%d in %.1fs",
                    method, exc, attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Sending ──────────────────────────────────────────────────────────

    async def send(self, signal: Signal, image_path: Optional[pathlib.Path] = None) -> None:
        """Send *signal* as a text message, or as a photo caption if *image_path* is given."""
        text = format_signal_message(signal, self._expiry_minutes, self._confirm_timeframe)

        if image_path is not None:
            photo = pathlib.Path(image_path).read_bytes()
            await self._post_with_retry(
                "sendPhoto",
                data={"chat_id": self._chat_id, "caption": text, "parse_mode": "HTML"},
                files={"photo": (pathlib.Path(image_path).name, photo, "image/png")},
            )
        else:
            await self._post_with_retry(
                "sendMessage",
                json={"chat_id": self._chat_id, "text": text, "parse_mode": "HTML"},
            )

        logger.info(
            "Signal sent to Telegram: %s %s %s",
            signal.symbol, signal.direction.value, signal.pattern.label,
        )
