"""Spotify OAuth 2.0 with PKCE.

Flow:
  1. GET /login        → redirect to Spotify /authorize with code_challenge
  2. GET /callback     → exchange code for tokens via /api/token
  3. Refresh token + auth time stored in the user config
  4. Afterwards the token manager refreshes access tokens on demand
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from base64 import urlsafe_b64encode
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from pydantic import BaseModel

from honorific.config import Config, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

_SCOPES = " ".join(
    [
        "user-read-currently-playing",
        "user-read-playback-state",
    ]
)

_SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
_SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
_TOKEN_TIMEOUT = 10.0  # seconds


class AuthenticationError(Exception):
    """Raised when a token exchange or refresh is rejected."""


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600


# ---------------------------------------------------------------------------
# PKCE helpers
# ---------------------------------------------------------------------------

def _generate_code_verifier(length: int = 128) -> str:
    """Random URL-safe string (43-128 chars) per RFC 7636."""
    return secrets.token_urlsafe(length)[:length]


def _generate_code_challenge(verifier: str) -> str:
    """S256 code challenge = BASE64URL(SHA256(verifier))."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


# ---------------------------------------------------------------------------
# Token endpoint
# ---------------------------------------------------------------------------

async def _request_token(data: dict, *, token_url: str = _SPOTIFY_TOKEN_URL) -> TokenResponse:
    async with httpx.AsyncClient(timeout=_TOKEN_TIMEOUT) as client:
        resp = await client.post(token_url, data=data)

    if resp.status_code != 200:
        logger.warning("Token request failed (%s): %s", resp.status_code, resp.text)
        raise AuthenticationError(f"Token request failed ({resp.status_code})")

    return TokenResponse.model_validate(resp.json())


async def refresh_access_token(client_id: str, refresh_token: str) -> TokenResponse:
    """Exchange a refresh token for a new access token (PKCE refresh grant)."""
    return await _request_token(
        {
            "client_id": client_id,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
    )


async def exchange_code(
    client_id: str, code: str, redirect_uri: str, verifier: str
) -> TokenResponse:
    """Exchange an authorization code for tokens."""
    return await _request_token(
        {
            "client_id": client_id,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": verifier,
        }
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("/login")
async def login(request: Request):
    """Start the Spotify PKCE login flow."""
    config: Config = request.app.state.config
    client_id, client_secret = config.with_lock(
        lambda: (config.spotify_client_id, config.spotify_client_secret)
    )

    if not client_id.strip() or not client_secret.strip():
        raise HTTPException(
            status_code=400,
            detail="Spotify Client ID and Secret are required before authenticating.",
        )

    verifier = _generate_code_verifier()
    challenge = _generate_code_challenge(verifier)

    # Store verifier in session so /callback can use it.
    request.session["code_verifier"] = verifier

    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": get_settings().redirect_uri,
        "scope": _SCOPES,
        "code_challenge_method": "S256",
        "code_challenge": challenge,
    }
    return RedirectResponse(f"{_SPOTIFY_AUTH_URL}?{urlencode(params)}")


@router.get("/callback", response_class=PlainTextResponse)
async def callback(request: Request, code: str | None = None, error: str | None = None):
    """Handle Spotify's redirect after the user authorizes."""
    if error:
        raise HTTPException(status_code=400, detail=f"Spotify auth error: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    verifier = request.session.pop("code_verifier", None)
    if not verifier:
        raise HTTPException(status_code=400, detail="Missing code_verifier, restart login")

    config: Config = request.app.state.config
    client_id = config.with_lock(lambda: config.spotify_client_id)

    try:
        tokens = await exchange_code(client_id, code, get_settings().redirect_uri, verifier)
    except (AuthenticationError, httpx.HTTPError) as exc:
        logger.error("Spotify authentication failed: %s", exc)
        raise HTTPException(status_code=502, detail=f"Spotify token exchange failed: {exc}")

    if not tokens.refresh_token:
        raise HTTPException(status_code=502, detail="Spotify did not return a refresh token")

    def _store_tokens() -> None:
        config.spotify_refresh_token = tokens.refresh_token
        config.last_spotify_auth_time = datetime.now(timezone.utc)
        config.save()

    config.with_lock(_store_tokens)
    request.app.state.token_manager.reset()

    logger.info("Successfully authenticated with Spotify!")
    return "Authenticated with Spotify. You can close this window."
