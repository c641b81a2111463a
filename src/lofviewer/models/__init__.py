"""Data models for upstream feeds, snapshots and actions."""

from lofviewer.models._base import EpochMs, LofBaseModel, LofEnum, now_ms, to_epoch_ms
from lofviewer.models.controller import RUNNING_MODES, ControllerStatus
from lofviewer.models.envelope import ErrorCode, ResultEnvelope
from lofviewer.models.notice import Notice, NoticeKind
from lofviewer.models.requests import ActionResult, SongRequestPayload, SongRequestResult, SpeakerCommand
from lofviewer.models.session import RecentRequest, VisitorRecord, VisitorSession
from lofviewer.models.show import QueueEntry, ShowDetails, ShowStatus, Song
from lofviewer.models.speaker import (
    SpeakerConfig,
    SpeakerDenial,
    SpeakerDisplayMode,
    SpeakerSession,
    SpeakerView,
)

__all__ = [
    "ActionResult",
    "ControllerStatus",
    "EpochMs",
    "ErrorCode",
    "LofBaseModel",
    "LofEnum",
    "Notice",
    "NoticeKind",
    "QueueEntry",
    "RUNNING_MODES",
    "RecentRequest",
    "ResultEnvelope",
    "ShowDetails",
    "ShowStatus",
    "Song",
    "SongRequestPayload",
    "SongRequestResult",
    "SpeakerCommand",
    "SpeakerConfig",
    "SpeakerDenial",
    "SpeakerDisplayMode",
    "SpeakerSession",
    "SpeakerView",
    "VisitorRecord",
    "VisitorSession",
    "now_ms",
    "to_epoch_ms",
]
