"""Title sink — the host side that actually displays the title.

Two calls: ``set_title(slot, payload)`` and ``clear_title(slot)``.  The slot
is always 0 (the local character).
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

_SINK_TIMEOUT = 1.0  # seconds; called from the tick loop


class TitleSink(Protocol):
    def set_title(self, slot: int, payload: str) -> None: ...

    def clear_title(self, slot: int) -> None: ...


class HttpTitleSink:
    """Forwards titles to a host bridge listening on loopback.

    ``POST {base_url}/title/{slot}`` with the JSON payload as body,
    ``DELETE {base_url}/title/{slot}`` to clear.
    """

    def __init__(self, base_url: str, *, transport: httpx.BaseTransport | None = None):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=_SINK_TIMEOUT,
            transport=transport,
        )

    def set_title(self, slot: int, payload: str) -> None:
        resp = self._client.post(
            f"/title/{slot}",
            content=payload,
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()

    def clear_title(self, slot: int) -> None:
        resp = self._client.delete(f"/title/{slot}")
        resp.raise_for_status()

    def close(self) -> None:
        self._client.close()


class LoggingTitleSink:
    """Used when no host bridge is configured."""

    def set_title(self, slot: int, payload: str) -> None:
        logger.info("set title [%d]: %s", slot, payload)

    def clear_title(self, slot: int) -> None:
        logger.info("clear title [%d]", slot)
