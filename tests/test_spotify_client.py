"""Tests for the retry policy and the currently-playing request (honorific/spotify_client.py)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from honorific.spotify_client import SpotifyAPIError, SpotifyClient, with_retry


def _mock_response(status: int = 200, json_data: dict | None = None, text: str = ""):
    """Create a fake httpx.Response."""
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status
    resp.json.return_value = json_data or {}
    resp.content = b"" if status == 204 else b"{}"
    resp.text = text
    return resp


def _patched_client(resp):
    """Patch httpx.AsyncClient so every request returns *resp*."""
    patcher = patch("httpx.AsyncClient")
    mock_client_cls = patcher.start()
    mock_instance = AsyncMock()
    mock_instance.request = AsyncMock(return_value=resp)
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_instance
    return patcher, mock_instance


# ---------------------------------------------------------------------------
# with_retry
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_retry_backs_off_one_then_two_seconds():
    sleep = AsyncMock()
    operation = AsyncMock(side_effect=[RuntimeError("boom"), RuntimeError("boom"), "ok"])

    result = await with_retry(operation, max_attempts=3, sleep=sleep)

    assert result == "ok"
    assert operation.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_unauthorized_fails_fast():
    sleep = AsyncMock()
    operation = AsyncMock(side_effect=SpotifyAPIError(401, "expired"))

    with pytest.raises(SpotifyAPIError) as exc_info:
        await with_retry(operation, max_attempts=3, sleep=sleep)

    assert exc_info.value.status_code == 401
    assert operation.await_count == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_retry_last_failure_propagates():
    sleep = AsyncMock()
    operation = AsyncMock(side_effect=SpotifyAPIError(503, "unavailable"))

    with pytest.raises(SpotifyAPIError) as exc_info:
        await with_retry(operation, max_attempts=3, sleep=sleep)

    assert exc_info.value.status_code == 503
    assert operation.await_count == 3
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_retry_first_success_does_not_sleep():
    sleep = AsyncMock()
    assert await with_retry(AsyncMock(return_value=None), sleep=sleep) is None
    sleep.assert_not_awaited()


# ---------------------------------------------------------------------------
# SpotifyClient.get_currently_playing
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_currently_playing_parses_track():
    resp = _mock_response(
        200,
        {
            "is_playing": True,
            "currently_playing_type": "track",
            "item": {
                "type": "track",
                "id": "t1",
                "name": "Song",
                "artists": [{"name": "Artist"}],
                "album": {"name": "Album"},
            },
        },
    )
    patcher, mock_instance = _patched_client(resp)
    try:
        playing = await SpotifyClient("tok").get_currently_playing()
    finally:
        patcher.stop()

    assert playing is not None
    assert playing.item.name == "Song"
    _, kwargs = mock_instance.request.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    args = mock_instance.request.call_args.args
    assert args[0] == "GET"
    assert args[1].endswith("/me/player/currently-playing")


@pytest.mark.asyncio
async def test_currently_playing_nothing_playing():
    patcher, _ = _patched_client(_mock_response(204))
    try:
        assert await SpotifyClient("tok").get_currently_playing() is None
    finally:
        patcher.stop()


@pytest.mark.asyncio
async def test_error_status_raises_api_error():
    patcher, _ = _patched_client(_mock_response(401, text="The access token expired"))
    try:
        with pytest.raises(SpotifyAPIError) as exc_info:
            await SpotifyClient("tok").get_currently_playing()
    finally:
        patcher.stop()

    assert exc_info.value.is_unauthorized
    assert "expired" in exc_info.value.detail
