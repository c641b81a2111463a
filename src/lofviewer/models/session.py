"""Visitor session models (in-memory and durable)."""

from __future__ import annotations

from pydantic import Field

from lofviewer.models._base import EpochMs, LofBaseModel, now_ms


class RecentRequest(LofBaseModel):
    song_id: str
    title: str = "Unknown Song"
    timestamp: EpochMs = 0
    queue_position: int = 0


class VisitorSession(LofBaseModel):
    """Who is watching, and what they asked for last."""

    visitor_id: str
    session_started_at: int = Field(default_factory=now_ms)
    interaction_count: int = Field(default=0, ge=0)
    recent_request: RecentRequest | None = None


class VisitorRecord(LofBaseModel):
    """The part of :class:`VisitorSession` that survives a restart."""

    visitor_id: str
    recent_request: RecentRequest | None = None
