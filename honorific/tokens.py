"""Access-token lifecycle on top of the stored refresh token.

States:
  UNCONFIGURED — refresh token, client id or client secret is blank
  STALE        — configured, but no cached access token or it is older than
                 ``TOKEN_REFRESH_WINDOW``
  FRESH        — cached access token younger than the refresh window

Refreshing is demand-driven: it only ever happens inside ``get_client()``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from honorific.auth import TokenResponse, refresh_access_token
from honorific.config import Config
from honorific.notify import Notifier
from honorific.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)

# Spotify access tokens expire after 60 minutes.
TOKEN_REFRESH_WINDOW = timedelta(minutes=55)


class TokenState(str, Enum):
    UNCONFIGURED = "unconfigured"
    STALE = "stale"
    FRESH = "fresh"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class TokenManager:
    def __init__(
        self,
        config: Config,
        notifier: Notifier,
        *,
        refresh: Callable[[str, str], Awaitable[TokenResponse]] = refresh_access_token,
        client_factory: Callable[[str], SpotifyClient] = SpotifyClient,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._config = config
        self._notifier = notifier
        self._refresh = refresh
        self._client_factory = client_factory
        self._clock = clock

        self._client: Optional[SpotifyClient] = None
        self._access_token: Optional[str] = None
        self.refresh_count = 0

    def _credentials(self) -> tuple[str, str, str, Optional[datetime]]:
        cfg = self._config
        return cfg.with_lock(
            lambda: (
                cfg.spotify_refresh_token,
                cfg.spotify_client_id,
                cfg.spotify_client_secret,
                cfg.last_spotify_auth_time,
            )
        )

    def _is_fresh(self, last_auth_time: Optional[datetime]) -> bool:
        if self._client is None or self._access_token is None or last_auth_time is None:
            return False
        return _as_aware(last_auth_time) + TOKEN_REFRESH_WINDOW > self._clock()

    @property
    def state(self) -> TokenState:
        refresh_token, client_id, client_secret, last_auth_time = self._credentials()
        if not (refresh_token.strip() and client_id.strip() and client_secret.strip()):
            return TokenState.UNCONFIGURED
        return TokenState.FRESH if self._is_fresh(last_auth_time) else TokenState.STALE

    def reset(self) -> None:
        """Drop the cached client so the next call re-resolves it."""
        self._access_token = None
        self._client = None

    async def get_client(self) -> Optional[SpotifyClient]:
        """Return a client with a valid access token, or ``None``.

        A failed refresh clears the stored refresh token, forcing the user to
        authenticate again.
        """
        refresh_token, client_id, client_secret, last_auth_time = self._credentials()

        if not (refresh_token.strip() and client_id.strip() and client_secret.strip()):
            return None

        if self._is_fresh(last_auth_time):
            return self._client

        logger.debug("Spotify token expired or missing, requesting new one...")
        self.refresh_count += 1

        try:
            response = await self._refresh(client_id, refresh_token)
        except Exception:
            logger.exception("Failed to refresh Spotify token!")

            def _clear_refresh_token() -> None:
                self._config.spotify_refresh_token = ""
                self._config.save()

            self._config.with_lock(_clear_refresh_token)
            self.reset()
            self._notifier.print_error(
                "Spotify authentication expired or was revoked. Please authenticate again."
            )
            return None

        self._access_token = response.access_token

        def _store_refresh() -> None:
            if response.refresh_token:
                self._config.spotify_refresh_token = response.refresh_token
            self._config.last_spotify_auth_time = self._clock()
            self._config.save()

        self._config.with_lock(_store_refresh)

        self._client = self._client_factory(self._access_token)
        return self._client
