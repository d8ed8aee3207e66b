"""Tick-driven title updater.

The host calls :meth:`Updater.on_tick` once per frame with the elapsed time.
Each tick:

  1. Poll results — completed polls are consumed, update whether music is
     playing and may install a new render action (track change) or clear
     the title
  2. AFK check — idle with no music playing clears the title and ends the tick
  3. Title refresh — advance the render clock and re-render the current title
  4. Polling gate — every ``POLLING_INTERVAL_SECONDS`` start a background poll

Polls run as detached asyncio tasks; their only side effect is to queue a
result that the next tick picks up.  Nothing raised by a step escapes the
tick.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, Optional

from honorific.config import Config
from honorific.idle import IdleTimer
from honorific.notify import Notifier
from honorific.polling import SpotifyPollingService
from honorific.rendering import TitleRenderingService
from honorific.sink import TitleSink
from titlecore.models import ActivityConfig, Track, UpdaterContext
from titlecore.templates import TemplateCache
from titlecore.validation import find_active_config

logger = logging.getLogger(__name__)

POLLING_INTERVAL_SECONDS = 2.0
AFK_THRESHOLD_MS = 30_000
TITLE_SLOT = 0


class UpdaterState(str, Enum):
    AFK_IDLE = "afk_idle"
    ACTIVE_NO_TRACK = "active_no_track"
    ACTIVE_RENDERING = "active_rendering"


@dataclass(frozen=True)
class PollResult:
    track: Optional[Track]


class Updater:
    def __init__(
        self,
        config: Config,
        polling: SpotifyPollingService,
        renderer: TitleRenderingService,
        template_cache: TemplateCache,
        sink: TitleSink,
        notifier: Notifier,
        idle_timer: IdleTimer,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._config = config
        self._polling = polling
        self._renderer = renderer
        self._templates = template_cache
        self._sink = sink
        self._notifier = notifier
        self._idle_timer = idle_timer
        self._clock = clock

        self.context = UpdaterContext()
        self.is_player_afk = False
        self.is_music_playing = False
        self.current_track_id: Optional[str] = None

        self._update_title: Optional[Callable[[], None]] = None
        self._updated_title_json: Optional[str] = None
        self._polling_timer = 0.0
        self._poll_task: Optional[asyncio.Task] = None
        self._poll_results: Deque[PollResult] = deque()
        self._has_logged_afk = False
        self._session_start = clock()

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> UpdaterState:
        if self.is_player_afk and not self.is_music_playing:
            return UpdaterState.AFK_IDLE
        if self._update_title is not None:
            return UpdaterState.ACTIVE_RENDERING
        return UpdaterState.ACTIVE_NO_TRACK

    @property
    def displayed_title_json(self) -> Optional[str]:
        return self._updated_title_json

    @property
    def polling_timer(self) -> float:
        return self._polling_timer

    def _debug_enabled(self) -> bool:
        return self._config.with_lock(lambda: self._config.enable_debug_logging)

    # -- tick ----------------------------------------------------------------

    def on_tick(self, delta_seconds: float) -> None:
        # Completed polls decide is_music_playing, which the AFK gate reads.
        self._process_poll_results()
        if self._handle_afk_status():
            return
        self._process_title_update(delta_seconds)
        self._handle_polling(delta_seconds)

    def _handle_afk_status(self) -> bool:
        try:
            self.is_player_afk = self._idle_timer.idle_ms() > AFK_THRESHOLD_MS
        except Exception:
            logger.warning("Could not get system idle time.", exc_info=True)
            self.is_player_afk = False

        if self.is_player_afk and not self.is_music_playing:
            if not self._has_logged_afk:
                logger.debug("Player is AFK and no music is playing, stopping polling.")
                self._has_logged_afk = True
            self.clear_title()
            self._polling_timer = 0.0
            return True

        self._has_logged_afk = False
        return False

    def _process_poll_results(self) -> None:
        while self._poll_results:
            result = self._poll_results.popleft()
            try:
                if result.track is not None:
                    self.is_music_playing = True
                    self._process_currently_playing_track(result.track)
                else:
                    self.is_music_playing = False
                    self.current_track_id = None
                    self.clear_title()
            except Exception:
                logger.exception("Failed to apply poll result")
                self.clear_title()

    def _process_title_update(self, delta_seconds: float) -> None:
        if self._update_title is None:
            return

        self.context.secs_elapsed += delta_seconds
        try:
            self._update_title()
        except Exception:
            logger.exception("Failed to update title")
            self._notifier.print_error("Failed to update title. Check the log for details.")
            self._update_title = None

    def _handle_polling(self, delta_seconds: float) -> None:
        enabled, refresh_token = self._config.with_lock(
            lambda: (self._config.enabled, self._config.spotify_refresh_token)
        )
        if not enabled:
            self.clear_title()
            return

        self._polling_timer += delta_seconds

        if (
            self._polling_timer < POLLING_INTERVAL_SECONDS
            or not refresh_token.strip()
            or self.poll_in_flight
        ):
            return

        if self._debug_enabled():
            logger.debug(
                "POLLING NOW. Timer: %.2f/%.1fs | IsPlaying: %s",
                self._polling_timer,
                POLLING_INTERVAL_SECONDS,
                self.is_music_playing,
            )

        self._polling_timer = 0.0
        try:
            self._poll_task = asyncio.get_running_loop().create_task(self._poll_spotify())
        except RuntimeError:
            logger.exception("Could not start Spotify poll")

    @property
    def poll_in_flight(self) -> bool:
        if self._polling.in_flight:
            return True
        return self._poll_task is not None and not self._poll_task.done()

    async def _poll_spotify(self) -> None:
        try:
            track = await self._polling.poll_once()
        except Exception:
            logger.exception("Unhandled error during Spotify poll")
            track = None
        self._poll_results.append(PollResult(track))

    # -- track handling ------------------------------------------------------

    def _select_active_config(self) -> Optional[ActivityConfig]:
        return self._config.with_lock(
            lambda: find_active_config(
                self._config.activity_configs, self._config.active_config_name
            )
        )

    def _process_currently_playing_track(self, track: Track) -> None:
        if track.id == self.current_track_id:
            return

        self.current_track_id = track.id

        activity_config = self._select_active_config()
        if activity_config is None or not self._renderer.matches_filter(
            activity_config, track, self.context
        ):
            self.clear_title()
            self.current_track_id = track.id
            return

        self.context.secs_elapsed = 0.0
        self._update_title = self._create_title_update_action(activity_config, track)

    def _create_title_update_action(
        self, activity_config: ActivityConfig, track: Track
    ) -> Callable[[], None]:
        def update() -> None:
            if not self._config.with_lock(lambda: self._config.enabled):
                self.clear_title()
                return
            self._render_and_set_title(activity_config, track)

        return update

    def _render_and_set_title(self, activity_config: ActivityConfig, track: Track) -> None:
        title = self._renderer.render_title(activity_config, track, self.context)
        if title is None:
            return

        serialized = self._renderer.serialize_title_data(title, activity_config, self.context)
        if serialized == self._updated_title_json:
            return

        if self._debug_enabled():
            logger.debug("Call SetCharacterTitle with: %s", serialized)
        self._sink.set_title(TITLE_SLOT, serialized)
        self._updated_title_json = serialized

    # -- clearing ------------------------------------------------------------

    def clear_title(self) -> None:
        """Remove the displayed title; the sink is only called if one is shown."""
        if self._updated_title_json is not None:
            logger.debug("Call ClearCharacterTitle")
            try:
                self._sink.clear_title(TITLE_SLOT)
            except Exception:
                logger.exception("Failed to clear title")

        self.context.secs_elapsed = 0.0
        self._update_title = None
        self._updated_title_json = None
        self.current_track_id = None

    def dispose(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self.clear_title()

    # -- diagnostics ---------------------------------------------------------

    def get_performance_stats(self) -> str:
        session = self._clock() - self._session_start
        hours, rem = divmod(int(session.total_seconds()), 3600)
        minutes, seconds = divmod(rem, 60)

        return "\n".join(
            [
                "=== SpotifyHonorific Performance Stats ===",
                f"Session Duration: {hours:02d}:{minutes:02d}:{seconds:02d}",
                "",
                "API Statistics:",
                f"• Total API calls: {self._polling.api_call_count}",
                f"• API errors: {self._polling.api_error_count}",
                f"• Average response time: {self._polling.average_response_time:.0f}ms",
                "",
                "Template Cache:",
                f"• Cache hits: {self._templates.hits}",
                f"• Cache misses: {self._templates.misses}",
                f"• Hit rate: {self._templates.hit_rate:.1f}%",
                f"• Cached templates: {self._templates.cached_template_count}",
                "",
                "Music:",
                f"• Unique tracks today: {len(self._polling.unique_tracks_today)}",
                f"• Currently playing: {'Yes' if self.is_music_playing else 'No'}",
                f"• Player AFK: {'Yes' if self.is_player_afk else 'No'}",
            ]
        )
