"""Spotify Web API client for the player endpoints, plus the retry policy.

Features:
  - Bearer-token client built from a refreshed access token
  - ``with_retry``: bounded attempts, exponential backoff (``2**attempt`` s)
  - 401 is never retried
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from titlecore.models import CurrentlyPlaying

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MAX_RETRY_ATTEMPTS = 3
_BACKOFF_BASE = 2.0  # seconds; delay = _BACKOFF_BASE ** attempt
_REQUEST_TIMEOUT = 5.0  # seconds

_SPOTIFY_API = "https://api.spotify.com/v1"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SpotifyAPIError(Exception):
    """Raised when a Spotify API request returns an error status."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Spotify API error {status_code}: {detail}")

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------

async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = MAX_RETRY_ATTEMPTS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    debug: bool = False,
) -> T:
    """Run *operation* up to *max_attempts* times.

    Waits ``2**attempt`` seconds between attempts.  A 401 is re-raised
    immediately; after the last attempt the failure propagates.
    """
    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as exc:
            if attempt == max_attempts - 1:
                raise
            if isinstance(exc, SpotifyAPIError) and exc.is_unauthorized:
                raise

            delay = _BACKOFF_BASE ** attempt
            if debug:
                logger.debug(
                    "Retry attempt %d/%d after %.0fs delay. Error: %s",
                    attempt + 1,
                    max_attempts,
                    delay,
                    exc,
                )
            await sleep(delay)

    raise RuntimeError("with_retry called with max_attempts < 1")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class SpotifyClient:
    """Authenticated handle for the player endpoints."""

    def __init__(self, access_token: str, *, base_url: str = _SPOTIFY_API):
        self.access_token = access_token
        self._base_url = base_url

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self.access_token}"

        async with httpx.AsyncClient(timeout=_REQUEST_TIMEOUT) as client:
            resp = await client.request(
                method, f"{self._base_url}{path}", headers=headers, **kwargs
            )

        if resp.status_code >= 400:
            raise SpotifyAPIError(resp.status_code, resp.text)
        return resp

    async def get_currently_playing(self) -> Optional[CurrentlyPlaying]:
        """``None`` when nothing is playing on any device (HTTP 204)."""
        resp = await self._request(
            "GET",
            "/me/player/currently-playing",
            params={"additional_types": "track,episode"},
        )
        if resp.status_code == 204 or not resp.content:
            return None
        return CurrentlyPlaying.from_api(resp.json())
