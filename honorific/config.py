"""Application settings (.env via pydantic-settings) and the persisted user config."""

from __future__ import annotations

import threading
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, List, Optional, TypeVar

from pydantic import BaseModel, Field, PrivateAttr
from pydantic_settings import BaseSettings

from titlecore.models import ActivityConfig
from titlecore.validation import config_exists, validate_activity_config

if TYPE_CHECKING:
    from honorific.store import ConfigStore

T = TypeVar("T")


class Settings(BaseSettings):
    """Process configuration — values come from environment / .env file."""

    # Persisted user config (credentials, activity configs)
    config_path: str = "./data/config.json"

    # Loopback origin for the OAuth redirect and diagnostics routes
    base_url: str = "http://127.0.0.1:5000"
    secret_key: str = "change-me"

    # Host title bridge; empty → titles are only logged
    sink_url: str = ""

    # Seconds between driver ticks
    tick_interval: float = 0.05

    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def config_abs_path(self) -> Path:
        """Return the config path as an absolute Path, creating parents if needed."""
        p = Path(self.config_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p.resolve()

    @property
    def redirect_uri(self) -> str:
        return f"{self.base_url}/callback"


@lru_cache
def get_settings() -> Settings:
    """Cached singleton so .env is read only once."""
    return Settings()


# ---------------------------------------------------------------------------
# Persisted user config
# ---------------------------------------------------------------------------

class Config(BaseModel):
    """Process-wide config aggregate.

    Every read/write from the updater, the polling service and the HTTP
    routes goes through :meth:`with_lock`.  The lock is reentrant so a read
    nested in a larger read-modify-write does not deadlock.
    """

    version: int = 1
    enabled: bool = True

    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    spotify_refresh_token: str = ""
    last_spotify_auth_time: Optional[datetime] = None

    enable_debug_logging: bool = False

    active_config_name: str = ""
    activity_configs: List[ActivityConfig] = Field(default_factory=list)

    _lock: Any = PrivateAttr(default_factory=threading.RLock)
    _store: Any = PrivateAttr(default=None)

    @classmethod
    def with_defaults(cls) -> "Config":
        """Fresh config seeded with the default activity configs."""
        configs = ActivityConfig.defaults()
        return cls(activity_configs=configs, active_config_name=configs[0].name)

    def bind(self, store: "ConfigStore") -> None:
        self._store = store

    def with_lock(self, action: Callable[[], T]) -> T:
        """Run *action* under exclusive access and return its result."""
        with self._lock:
            return action()

    def save(self) -> None:
        """Persist synchronously through the bound store."""
        with self._lock:
            if self._store is None:
                raise RuntimeError("Config is not bound to a store; call bind() first.")
            self._store.save(self)

    def recreate_defaults(self) -> None:
        """Restore the seeded configs, replacing same-named ones in place."""
        with self._lock:
            for default in ActivityConfig.defaults():
                for i, existing in enumerate(self.activity_configs):
                    if existing.name == default.name:
                        self.activity_configs[i] = default
                        break
                else:
                    self.activity_configs.append(default)

    def validate_all(self) -> List[str]:
        """Human-readable configuration problems (empty when valid)."""
        with self._lock:
            errors: List[str] = []
            if self.enabled:
                if not self.spotify_refresh_token.strip():
                    errors.append(
                        "Spotify authentication required when enabled. "
                        "Please authenticate with Spotify."
                    )
                if not self.spotify_client_id.strip():
                    errors.append(
                        "Spotify Client ID is required. Please set up your Spotify app credentials."
                    )
                if not self.spotify_client_secret.strip():
                    errors.append(
                        "Spotify Client Secret is required. Please set up your Spotify app credentials."
                    )
                if (
                    self.active_config_name.strip()
                    and self.activity_configs
                    and not config_exists(self.activity_configs, self.active_config_name)
                ):
                    errors.append(
                        f"Active config '{self.active_config_name}' not found. "
                        "Please select a valid config."
                    )

            for activity_config in self.activity_configs:
                errors.extend(validate_activity_config(activity_config))
            return errors
