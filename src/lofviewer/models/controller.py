"""Playback controller feed model."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import field_validator

from lofviewer.models._base import LofBaseModel

#: Playback modes in which the show counts as running. ``idle`` is the
#: gap between two sequences, not a stopped show.
RUNNING_MODES: frozenset[str] = frozenset({"playing", "idle"})


class ControllerStatus(LofBaseModel):
    """Normalized playback controller status.

    ``viewer_control_enabled`` is only present when the controller proxy
    reports it; otherwise the show feed's ``requests_enabled`` stands in.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "mode_name": "mode",
        "fppMode": "mode",
        "current_song": "currentSongAudio",
        "seconds_played": "secondsElapsed",
    }

    mode: str = "idle"
    current_sequence: str | None = None
    current_song_audio: str | None = None
    seconds_elapsed: int = 0
    seconds_remaining: int = 0
    viewer_control_enabled: bool | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def is_playing(self) -> bool:
        return self.mode == "playing"

    @property
    def is_running(self) -> bool:
        return self.mode in RUNNING_MODES
