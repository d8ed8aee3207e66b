"""Tests for active-config selection and profile validation (titlecore/validation.py)."""

from __future__ import annotations

import pytest

from titlecore.models import ActivityConfig
from titlecore.validation import (
    config_exists,
    find_active_config,
    find_active_config_index,
    is_valid_normalized_rgb,
    validate_activity_config,
)


def _configs(*names: str) -> list[ActivityConfig]:
    return [ActivityConfig(name=n, title_template=n) for n in names]


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

class TestFindActiveConfig:
    @pytest.mark.parametrize(
        "name, expected",
        [("B", "B"), ("Z", "A"), ("", "A"), (None, "A")],
    )
    def test_falls_back_to_first(self, name, expected):
        assert find_active_config(_configs("A", "B", "C"), name).name == expected

    def test_empty_list_gives_none(self):
        assert find_active_config([], "A") is None

    def test_first_match_wins_for_duplicates(self):
        configs = _configs("A", "B", "B")
        assert find_active_config(configs, "B") is configs[1]

    def test_index(self):
        configs = _configs("A", "B", "C")
        assert find_active_config_index(configs, "C") == 2
        assert find_active_config_index(configs, "Z") == 0
        assert find_active_config_index([], "A") == 0

    def test_exists(self):
        configs = _configs("A")
        assert config_exists(configs, "A")
        assert not config_exists(configs, "B")
        assert not config_exists(configs, "")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidateActivityConfig:
    def test_defaults_are_valid(self):
        for config in ActivityConfig.defaults():
            assert validate_activity_config(config) == []

    def test_empty_title_template(self):
        errors = validate_activity_config(ActivityConfig(name="X", title_template="  "))
        assert errors == ["'X': Title template is empty."]

    def test_invalid_title_template(self):
        errors = validate_activity_config(ActivityConfig(name="X", title_template="{% if %}"))
        assert len(errors) == 1
        assert errors[0].startswith("'X': Invalid title template syntax - ")

    def test_long_template_without_truncate_warns(self):
        errors = validate_activity_config(ActivityConfig(name="X", title_template="a" * 101))
        assert len(errors) == 1
        assert "truncate" in errors[0]

    def test_long_template_with_truncate_is_fine(self):
        source = "{{ Activity.name | truncate(20) }}" + " " * 80
        assert validate_activity_config(ActivityConfig(name="X", title_template=source)) == []

    def test_invalid_filter_template(self):
        config = ActivityConfig(name="X", title_template="ok", filter_template="{{ ")
        errors = validate_activity_config(config)
        assert len(errors) == 1
        assert "filter template" in errors[0]

    def test_out_of_range_colors(self):
        config = ActivityConfig(
            name="", title_template="ok", color=(1.5, 0.0, 0.0), glow=(0.0, -0.1, 0.0)
        )
        errors = validate_activity_config(config)
        assert errors == [
            "Unnamed config: Color values must be between 0 and 1 (RGB normalized).",
            "Unnamed config: Glow values must be between 0 and 1 (RGB normalized).",
        ]


@pytest.mark.parametrize(
    "color, valid",
    [((0.0, 0.5, 1.0), True), ((1.01, 0.0, 0.0), False), ((0.0, 0.0, -0.01), False)],
)
def test_is_valid_normalized_rgb(color, valid):
    assert is_valid_normalized_rgb(color) is valid
