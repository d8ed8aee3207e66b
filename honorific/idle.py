"""System idle time (milliseconds since last keyboard/mouse input)."""

from __future__ import annotations

import ctypes
import sys
from typing import Protocol


class IdleTimer(Protocol):
    def idle_ms(self) -> int: ...


class WindowsIdleTimer:
    """``GetLastInputInfo`` based idle time."""

    def __init__(self) -> None:
        from ctypes import wintypes

        class LASTINPUTINFO(ctypes.Structure):
            _fields_ = [("cbSize", wintypes.UINT), ("dwTime", wintypes.DWORD)]

        self._info_type = LASTINPUTINFO
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        self._kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]

    def idle_ms(self) -> int:
        info = self._info_type()
        info.cbSize = ctypes.sizeof(info)
        if not self._user32.GetLastInputInfo(ctypes.byref(info)):
            raise OSError(self._kernel32.GetLastError(), "GetLastInputInfo failed")
        tick = self._kernel32.GetTickCount() & 0xFFFFFFFF
        return (tick - info.dwTime) & 0xFFFFFFFF


class NullIdleTimer:
    """Platforms without an idle-time query: the user is never AFK."""

    def idle_ms(self) -> int:
        return 0


def system_idle_timer() -> IdleTimer:
    if sys.platform.startswith("win"):
        return WindowsIdleTimer()
    return NullIdleTimer()
