"""Export/Import of activity configs as JSON (never includes credentials)."""

from __future__ import annotations

import json

from pydantic import ValidationError

from titlecore.models import ActivityConfig


def export_activity_config(config: ActivityConfig) -> str:
    """Serialize a profile to indented JSON for sharing."""
    return config.model_dump_json(indent=2)


def import_activity_config(raw_json: str) -> ActivityConfig:
    """Parse JSON back into an ActivityConfig.

    Raises ``ValueError`` if the input is empty, not JSON, or not a profile.
    """
    if not raw_json or not raw_json.strip():
        raise ValueError("JSON string is empty.")

    try:
        data = json.loads(raw_json)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON format: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError("Failed to deserialize JSON: expected an object.")

    # Safety: a shared profile must never carry credentials
    for forbidden in ("spotify_client_secret", "spotify_refresh_token", "access_token"):
        data.pop(forbidden, None)

    try:
        return ActivityConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid activity config: {exc}") from exc
