"""Title rendering and sink payload preparation."""

from __future__ import annotations

import logging
from typing import Optional

from honorific.notify import Notifier
from titlecore.color import rainbow_color
from titlecore.models import ActivityConfig, TitlePayload, Track, UpdaterContext
from titlecore.templates import TemplateCache, TemplateParseError

logger = logging.getLogger(__name__)

# The sink refuses longer titles.
MAX_TITLE_LENGTH = 32

_FALSY_FILTER_OUTPUTS = frozenset({"", "false", "0", "no", "none"})


class TitleRenderingService:
    def __init__(self, template_cache: TemplateCache, notifier: Notifier):
        self._templates = template_cache
        self._notifier = notifier
        self._displayed_max_length_error = False

    @staticmethod
    def _bindings(track: Track, context: UpdaterContext) -> dict:
        return {"Activity": track, "Context": context}

    def render_title(
        self, config: ActivityConfig, track: Track, context: UpdaterContext
    ) -> Optional[str]:
        """Render *config*'s title template, or ``None`` if it can't be used.

        An over-long title is reported once, until a render fits again.
        """
        try:
            template = self._templates.get_or_compile(config.title_template)
        except TemplateParseError as exc:
            logger.error("%s", exc)
            self._notifier.print_error(str(exc))
            return None

        title = template.render(self._bindings(track, context))

        if len(title) > MAX_TITLE_LENGTH:
            if not self._displayed_max_length_error:
                message = (
                    f"Title '{title}' is longer than {MAX_TITLE_LENGTH} characters, "
                    "it won't be applied by honorific. Trim whitespaces or truncate "
                    "variables to reduce the length."
                )
                logger.error(message)
                self._notifier.print_error(message)
                self._displayed_max_length_error = True
            return None

        self._displayed_max_length_error = False
        return title

    def matches_filter(
        self, config: ActivityConfig, track: Track, context: UpdaterContext
    ) -> bool:
        """Whether *config* applies to *track*; a blank filter always matches.

        A filter that fails to compile or render is reported and never matches.
        """
        if not config.filter_template.strip():
            return True
        try:
            template = self._templates.get_or_compile(config.filter_template)
        except TemplateParseError as exc:
            logger.error("'%s' filter: %s", config.name, exc)
            self._notifier.print_error(f"'{config.name}' filter: {exc}")
            return False

        try:
            output = template.render(self._bindings(track, context))
        except Exception as exc:
            logger.exception("'%s' filter failed to render", config.name)
            self._notifier.print_error(f"'{config.name}' filter failed: {exc}")
            return False
        return output.strip().lower() not in _FALSY_FILTER_OUTPUTS

    def serialize_title_data(
        self, title: str, config: ActivityConfig, context: UpdaterContext
    ) -> str:
        """Compact JSON payload for the sink's ``set_title`` call."""
        color = rainbow_color(context.secs_elapsed) if config.rainbow_mode else config.color
        payload = TitlePayload(
            title=title,
            is_prefix=config.is_prefix,
            color=color,
            glow=config.glow,
        )
        return payload.to_json()
