"""JSON file persistence for :class:`~honorific.config.Config`.

``load()`` returns ``None`` when nothing has been saved yet; the caller
seeds a default config in that case.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from honorific.config import Config

logger = logging.getLogger(__name__)


class ConfigStore:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> Config | None:
        """Read the config file, or ``None`` if it is absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            config = Config.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("Failed to load config from %s, using defaults: %s", self.path, exc)
            return None
        config.bind(self)
        return config

    def save(self, config: Config) -> None:
        """Write the config atomically (temp file + replace)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, self.path)


def load_or_create_config(store: ConfigStore) -> Config:
    """Load the persisted config, seeding and saving defaults when absent."""
    config = store.load()
    if config is None:
        logger.info("No config at %s, creating defaults", store.path)
        config = Config.with_defaults()
        config.bind(store)
        config.save()
        return config

    def _ensure_active_name() -> bool:
        if not config.active_config_name and config.activity_configs:
            config.active_config_name = config.activity_configs[0].name
            return True
        return False

    if config.with_lock(_ensure_active_name):
        config.save()
    return config
