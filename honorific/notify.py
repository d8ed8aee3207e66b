"""User-facing messages (the "chat" channel), separate from the log."""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)

_PREFIX = "SpotifyHonorific"


class Notifier(Protocol):
    def print(self, message: str) -> None: ...

    def print_error(self, message: str) -> None: ...


class ConsoleNotifier:
    """Writes user messages to a console stream."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    def print(self, message: str) -> None:
        print(f"[{_PREFIX}] {message}", file=self._stream or sys.stdout, flush=True)

    def print_error(self, message: str) -> None:
        logger.debug("user error: %s", message)
        print(f"[{_PREFIX}] ERROR: {message}", file=self._stream or sys.stderr, flush=True)
