"""Speaker hardware session models and the derived speaker view."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import Field, field_validator

from lofviewer.models._base import EpochMs, LofBaseModel


class SpeakerConfig(LofBaseModel):
    """Operator speaker settings mirrored by the speaker feed."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "fm_frequency": "fmFrequency",
        "stream_url": "streamUrl",
        "noise_curfew_hour": "noiseCurfewHour",
        "noise_curfew_enabled": "noiseCurfewEnabled",
        "noise_curfew_override": "noiseCurfewOverride",
    }

    fm_frequency: str = "107.7"
    stream_url: str = ""
    noise_curfew_hour: int = Field(default=22, ge=0, le=24)
    noise_curfew_enabled: bool = True
    noise_curfew_override: bool = False

    def curfew_active(self, hour: int) -> bool:
        """Whether the noise curfew applies at local *hour* (0-23)."""
        return self.noise_curfew_enabled and not self.noise_curfew_override and hour >= self.noise_curfew_hour


class SpeakerSession(LofBaseModel):
    """Speaker sub-state as reported by the speaker hardware feed.

    Always replaced as a whole from server data. ``proximity_confirmed``
    is the one field owned locally: the visitor's own "I am at the show"
    confirmation.
    """

    enabled: bool = False
    remaining_seconds: int = Field(default=0, ge=0)
    session_started_at: EpochMs = 0
    session_lifetime_started_at: EpochMs = 0
    override: bool = False
    mode: str = "automatic"
    message: str = ""
    source: str | None = None
    fpp_playing: bool = False
    current_song: str | None = None
    proximity_tier: int = 1
    proximity_reason: str = ""
    proximity_confirmed: bool = False
    max_session_reached: bool = False
    lifetime_cap_reached: bool = False
    target_song_for_shutoff: str | None = None
    graceful_shutoff: bool = False
    config: SpeakerConfig = Field(default_factory=SpeakerConfig)

    @field_validator("remaining_seconds", mode="before")
    @classmethod
    def _clamp_remaining(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and value < 0:
            return 0
        return value

    @field_validator("proximity_tier", mode="before")
    @classmethod
    def _default_tier(cls, value: Any) -> Any:
        # 0 / missing means "not evaluated", which the server treats as tier 1.
        return value or 1


class SpeakerDisplayMode(StrEnum):
    OFF = "off"
    CURFEW = "curfew"
    GEO_BLOCKED = "geo_blocked"
    FPP_OFFLINE = "fpp_offline"
    PROTECTION = "protection"
    EXTENSION = "extension"
    ACTIVE = "active"


class SpeakerDenial(StrEnum):
    """Reasons a speaker guard refuses an action."""

    CURFEW = "CURFEW"
    ALREADY_ON = "ALREADY_ON"
    FPP_OFFLINE = "FPP_OFFLINE"
    GEO_BLOCKED = "GEO_BLOCKED"
    NOT_ON = "NOT_ON"
    PROTECTION_MODE = "PROTECTION_MODE"
    NOT_IN_EXTENSION_WINDOW = "NOT_IN_EXTENSION_WINDOW"
    SESSION_CAP = "SESSION_CAP"


class SpeakerView(LofBaseModel):
    """What the speaker card should show for one state snapshot."""

    display_mode: SpeakerDisplayMode
    is_speaker_on: bool
    button_enabled: bool
    emphasize_alternatives: bool = False
    show_countdown: bool = False
    countdown_seconds: int = 0
    countdown_label: str = "0:00"
    countdown_level: str = "normal"
    show_proximity_confirm: bool = False
    proximity_tier: int = 1
