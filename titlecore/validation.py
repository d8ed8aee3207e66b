"""Activity-config checks and active-config selection — pure logic, no I/O."""

from __future__ import annotations

from typing import List, Optional, Sequence

from titlecore.models import ActivityConfig, Rgb
from titlecore.templates import TemplateParseError, create_environment, parse_template

# Sources longer than this without a truncate filter will likely overflow the sink.
LONG_TEMPLATE_THRESHOLD = 100

_env = create_environment()


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def find_active_config(
    configs: Sequence[ActivityConfig], active_config_name: Optional[str]
) -> Optional[ActivityConfig]:
    """Config named *active_config_name*, else the first one, else ``None``."""
    if not configs:
        return None
    if not active_config_name:
        return configs[0]
    for config in configs:
        if config.name == active_config_name:
            return config
    return configs[0]


def find_active_config_index(
    configs: Sequence[ActivityConfig], active_config_name: Optional[str]
) -> int:
    if not configs or not active_config_name:
        return 0
    for i, config in enumerate(configs):
        if config.name == active_config_name:
            return i
    return 0


def config_exists(configs: Sequence[ActivityConfig], name: Optional[str]) -> bool:
    return bool(name) and any(c.name == name for c in configs)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def is_valid_normalized_rgb(color: Rgb) -> bool:
    return all(0.0 <= channel <= 1.0 for channel in color)


def template_errors(source: str) -> List[str]:
    """Parse errors for *source* (empty when it compiles)."""
    try:
        parse_template(_env, source)
    except TemplateParseError as exc:
        return exc.messages
    return []


def validate_activity_config(config: ActivityConfig) -> List[str]:
    """Human-readable problems with a single profile."""
    errors: List[str] = []
    prefix = f"'{config.name}'" if config.name.strip() else "Unnamed config"

    if not config.title_template.strip():
        errors.append(f"{prefix}: Title template is empty.")
    else:
        problems = template_errors(config.title_template)
        if problems:
            errors.append(f"{prefix}: Invalid title template syntax - {'; '.join(problems)}")
        elif (
            "truncate" not in config.title_template.lower()
            and len(config.title_template) > LONG_TEMPLATE_THRESHOLD
        ):
            errors.append(
                f"{prefix}: Title template is very long ({len(config.title_template)} chars) "
                "and doesn't use the 'truncate' filter. Rendered output may exceed the "
                "32 character limit."
            )

    if config.filter_template.strip():
        problems = template_errors(config.filter_template)
        if problems:
            errors.append(f"{prefix}: Invalid filter template syntax - {'; '.join(problems)}")

    if config.color is not None and not is_valid_normalized_rgb(config.color):
        errors.append(f"{prefix}: Color values must be between 0 and 1 (RGB normalized).")
    if config.glow is not None and not is_valid_normalized_rgb(config.glow):
        errors.append(f"{prefix}: Glow values must be between 0 and 1 (RGB normalized).")

    return errors
