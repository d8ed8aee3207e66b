"""Pydantic models shared across the application."""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Normalised RGB triple, each channel in [0, 1].
Rgb = Tuple[float, float, float]


# ---------------------------------------------------------------------------
# Spotify track data (read-only)
# ---------------------------------------------------------------------------

class Artist(BaseModel):
    name: str = ""


class Album(BaseModel):
    name: str = ""


class Track(BaseModel):
    """A full Spotify track as returned by the Web API."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""
    artists: List[Artist] = Field(default_factory=list)
    album: Album = Field(default_factory=Album)
    duration_ms: int = 0
    popularity: int = 0


class CurrentlyPlaying(BaseModel):
    """Response of ``GET /me/player/currently-playing``.

    ``item`` is only populated for full tracks; episodes and ads leave it empty.
    """

    is_playing: bool = False
    currently_playing_type: str = "unknown"  # "track" | "episode" | "ad" | "unknown"
    item: Optional[Track] = None

    @classmethod
    def from_api(cls, data: dict) -> "CurrentlyPlaying":
        item = data.get("item")
        track = None
        if item and item.get("type", "track") == "track" and item.get("id"):
            track = Track.model_validate(item)
        return cls(
            is_playing=bool(data.get("is_playing", False)),
            currently_playing_type=data.get("currently_playing_type", "unknown"),
            item=track,
        )


# ---------------------------------------------------------------------------
# Rendering profiles
# ---------------------------------------------------------------------------

_CYCLING_TITLE_TEMPLATE = (
    "♪{%- if (Context.secs_elapsed % 30) < 10 -%}\n"
    "    Listening to Spotify\n"
    "{%- elif (Context.secs_elapsed % 30) < 20 -%}\n"
    "    {{ Activity.name | truncate(30, true, '...', 0) }}\n"
    "{%- else -%}\n"
    "    {{ Activity.artists[0].name | truncate(30, true, '...', 0) }}\n"
    "{%- endif -%}♪"
)

_SIMPLE_TITLE_TEMPLATE = "♪{{ Activity.name | truncate(28, true, '...', 0) }}♪"


class ActivityConfig(BaseModel):
    """A named rendering profile."""

    name: str = ""
    type_name: str = "Spotify"
    filter_template: str = ""
    title_template: str = ""
    is_prefix: bool = False
    rainbow_mode: bool = False
    color: Optional[Rgb] = None
    glow: Optional[Rgb] = None

    def clone(self) -> "ActivityConfig":
        return self.model_copy(deep=True)

    @classmethod
    def defaults(cls) -> List["ActivityConfig"]:
        """Fresh copies of the seeded profiles."""
        return [config.clone() for config in _DEFAULTS]


_DEFAULTS = (
    ActivityConfig(
        name="Spotify",
        filter_template="{{ true }}",
        title_template=_CYCLING_TITLE_TEMPLATE,
    ),
    ActivityConfig(
        name="Spotify Simple",
        filter_template="{{ true }}",
        title_template=_SIMPLE_TITLE_TEMPLATE,
    ),
)


# ---------------------------------------------------------------------------
# Render state / payloads
# ---------------------------------------------------------------------------

class UpdaterContext(BaseModel):
    """Per-session render clock exposed to templates as ``Context``."""

    secs_elapsed: float = 0.0


class TitlePayload(BaseModel):
    """Body of the sink's ``set_title`` call — keys use the sink's casing."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(alias="Title")
    is_prefix: bool = Field(alias="IsPrefix")
    color: Optional[Rgb] = Field(default=None, alias="Color")
    glow: Optional[Rgb] = Field(default=None, alias="Glow")

    def to_json(self) -> str:
        """Compact, key-ordered JSON used for change detection."""
        return self.model_dump_json(by_alias=True)
