"""Colour helpers for rainbow titles."""

from __future__ import annotations

from titlecore.models import Rgb

# Hue cycles per render-second; one full cycle every 1 / RAINBOW_HUE_SPEED seconds.
RAINBOW_HUE_SPEED = 0.5


def hsv_to_rgb(h: float, s: float, v: float) -> Rgb:
    """Six-sector HSV → RGB conversion, all components in [0, 1]."""
    i = int(h * 6)
    f = h * 6 - i

    p = v * (1 - s)
    q = v * (1 - f * s)
    t = v * (1 - (1 - f) * s)

    sector = i % 6
    if sector == 0:
        return (v, t, p)
    if sector == 1:
        return (q, v, p)
    if sector == 2:
        return (p, v, t)
    if sector == 3:
        return (p, q, v)
    if sector == 4:
        return (t, p, v)
    return (v, p, q)


def rainbow_color(secs_elapsed: float) -> Rgb:
    """Fully saturated colour whose hue follows the render clock."""
    hue = (secs_elapsed * RAINBOW_HUE_SPEED) % 1.0
    return hsv_to_rgb(hue, 1.0, 1.0)
