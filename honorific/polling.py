"""Polling of the "currently playing" endpoint through the token manager."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, Set

from honorific.config import Config
from honorific.notify import Notifier
from honorific.spotify_client import MAX_RETRY_ATTEMPTS, SpotifyAPIError, with_retry
from honorific.tokens import TokenManager
from titlecore.models import Track

logger = logging.getLogger(__name__)

API_TIMEOUT_SECONDS = 5.0
MAX_RESPONSE_TIME_SAMPLES = 100


class SpotifyPollingService:
    """One poll = resolve a client, fetch the playing item, classify errors.

    At most one poll runs at a time; ``in_flight`` is set for its duration.
    """

    def __init__(
        self,
        config: Config,
        token_manager: TokenManager,
        notifier: Notifier,
        *,
        timeout: float = API_TIMEOUT_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._config = config
        self._tokens = token_manager
        self._notifier = notifier
        self._timeout = timeout
        self._sleep = sleep

        self.in_flight = False
        self.api_call_count = 0
        self.api_error_count = 0
        self._response_times: Deque[float] = deque(maxlen=MAX_RESPONSE_TIME_SAMPLES)
        self.unique_tracks_today: Set[str] = set()

    @property
    def average_response_time(self) -> float:
        """Mean of the recent response times, in milliseconds."""
        if not self._response_times:
            return 0.0
        return sum(self._response_times) / len(self._response_times)

    def _debug_enabled(self) -> bool:
        return self._config.with_lock(lambda: self._config.enable_debug_logging)

    async def poll_once(self) -> Optional[Track]:
        """Return the playing track, or ``None`` (paused, non-track, error)."""
        if self.in_flight:
            return None
        self.in_flight = True
        try:
            return await self._poll()
        finally:
            self.in_flight = False

    async def _poll(self) -> Optional[Track]:
        started = time.perf_counter()
        try:
            return await asyncio.wait_for(self._fetch(started), timeout=self._timeout)
        except asyncio.TimeoutError:
            self.api_error_count += 1
            self._handle_error(
                None, f"Spotify API request timed out after {self._timeout:.0f} seconds."
            )
        except SpotifyAPIError as exc:
            self.api_error_count += 1
            self._handle_error(exc, "Error polling Spotify. Token may be expired.")
        except Exception as exc:
            self.api_error_count += 1
            self._handle_error(exc, "Unhandled error during Spotify poll")
        return None

    async def _fetch(self, started: float) -> Optional[Track]:
        debug = self._debug_enabled()

        spotify = await with_retry(
            self._tokens.get_client,
            max_attempts=MAX_RETRY_ATTEMPTS,
            sleep=self._sleep,
            debug=debug,
        )
        if spotify is None:
            self.api_error_count += 1
            self._handle_error(None, "Spotify client is unavailable, likely not authenticated.")
            return None

        playing = await with_retry(
            spotify.get_currently_playing,
            max_attempts=MAX_RETRY_ATTEMPTS,
            sleep=self._sleep,
            debug=debug,
        )

        self.api_call_count += 1
        self._response_times.append((time.perf_counter() - started) * 1000)

        if playing is not None and playing.is_playing and playing.item is not None:
            self.unique_tracks_today.add(playing.item.id)
            return playing.item
        return None

    def _handle_error(self, exc: Optional[BaseException], message: str) -> None:
        if exc is not None:
            logger.warning("%s (%s)", message, exc)
        else:
            logger.warning(message)

        if self._debug_enabled():
            self._notifier.print_error(message)

        self._tokens.reset()
