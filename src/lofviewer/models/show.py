"""Show-control feed models (now playing, queue, request catalog)."""

from __future__ import annotations

from typing import ClassVar

from lofviewer.models._base import LofBaseModel, LofEnum


class ShowStatus(LofEnum):
    """Overall show status reported by the show-control service."""

    UNKNOWN = "unknown"
    IDLE = "idle"
    ACTIVE = "active"
    RUNNING_NO_CONTROL = "running_no_control"
    ENDED = "ended"


class Song(LofBaseModel):
    """A sequence visitors can request."""

    song_id: str
    title: str = "Untitled"
    artist: str | None = None
    duration: int = 0
    category: str = "general"
    is_available: bool = True
    cooldown_until: int | None = None


class QueueEntry(LofBaseModel):
    """One pending visitor request."""

    song_id: str | None = None
    title: str = "Requested song"
    artist: str = ""
    requested_by: str = "Guest"
    position: int = 0


class ShowDetails(LofBaseModel):
    """Normalized show feed payload."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "now_playing": "nowPlaying",
        "up_next": "upNext",
        "available_songs": "availableSongs",
        "show_status": "showStatus",
        "requests_enabled": "requestsEnabled",
    }

    now_playing: Song | None = None
    up_next: Song | None = None
    queue: tuple[QueueEntry, ...] = ()
    available_songs: tuple[Song, ...] = ()
    show_status: ShowStatus = ShowStatus.IDLE
    requests_enabled: bool = False

    def find_song(self, song_id: str) -> Song | None:
        for song in self.available_songs:
            if song.song_id == song_id:
                return song
        return None

    def requestable_songs(self) -> list[Song]:
        """Songs currently offered and not flagged unavailable."""
        return [song for song in self.available_songs if song.is_available]

    def is_queued(self, song_id: str) -> bool:
        return any(entry.song_id == song_id for entry in self.queue)
