"""Tests for rainbow colour maths (titlecore/color.py)."""

from __future__ import annotations

import pytest

from titlecore.color import RAINBOW_HUE_SPEED, hsv_to_rgb, rainbow_color


def test_hue_zero_is_red():
    assert hsv_to_rgb(0.0, 1.0, 1.0) == (1.0, 0.0, 0.0)


@pytest.mark.parametrize(
    "hue, expected",
    [
        (1 / 3, (0.0, 1.0, 0.0)),
        (2 / 3, (0.0, 0.0, 1.0)),
        (1 / 6, (1.0, 1.0, 0.0)),
        (0.5, (0.0, 1.0, 1.0)),
    ],
)
def test_primary_and_secondary_hues(hue, expected):
    assert hsv_to_rgb(hue, 1.0, 1.0) == pytest.approx(expected, abs=1e-6)


def test_zero_saturation_is_grey():
    assert hsv_to_rgb(0.4, 0.0, 0.5) == pytest.approx((0.5, 0.5, 0.5))


def test_rainbow_cycles_with_period():
    period = 1 / RAINBOW_HUE_SPEED
    assert rainbow_color(0.0) == pytest.approx(rainbow_color(period))
    assert rainbow_color(0.0) == pytest.approx((1.0, 0.0, 0.0))


def test_rainbow_channels_stay_normalized():
    for step in range(50):
        r, g, b = rainbow_color(step * 0.137)
        assert 0.0 <= r <= 1.0
        assert 0.0 <= g <= 1.0
        assert 0.0 <= b <= 1.0
