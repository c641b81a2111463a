"""lofviewer - Async core for a holiday light show viewer."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("lofviewer")
except PackageNotFoundError:
    __version__ = "0+local"
from lofviewer.client import ViewerClient
from lofviewer.config import FeatureFlags, ViewerConfig
from lofviewer.exceptions import LofApiError, LofConfigError, LofError, LofTransportError
from lofviewer.gating import SingleFlight, SongCooldowns
from lofviewer.models import (
    ActionResult,
    ControllerStatus,
    ErrorCode,
    Notice,
    NoticeKind,
    QueueEntry,
    RecentRequest,
    ResultEnvelope,
    ShowDetails,
    ShowStatus,
    Song,
    SpeakerDenial,
    SpeakerDisplayMode,
    SpeakerSession,
    SpeakerView,
    VisitorSession,
)
from lofviewer.notices import NoticeBoard
from lofviewer.persistence import SessionStore
from lofviewer.poller import Poller
from lofviewer.speaker import GuardResult, SpeakerCoordinator, derive_speaker_view
from lofviewer.state import (
    ConnectivityState,
    DerivedState,
    StateMachine,
    Subscription,
    UpdateReason,
    ViewerSnapshot,
)

__all__ = [
    "__version__",
    "ActionResult",
    "ConnectivityState",
    "ControllerStatus",
    "DerivedState",
    "ErrorCode",
    "FeatureFlags",
    "GuardResult",
    "LofApiError",
    "LofConfigError",
    "LofError",
    "LofTransportError",
    "Notice",
    "NoticeBoard",
    "NoticeKind",
    "Poller",
    "QueueEntry",
    "RecentRequest",
    "ResultEnvelope",
    "SessionStore",
    "ShowDetails",
    "ShowStatus",
    "SingleFlight",
    "Song",
    "SongCooldowns",
    "SpeakerCoordinator",
    "SpeakerDenial",
    "SpeakerDisplayMode",
    "SpeakerSession",
    "SpeakerView",
    "StateMachine",
    "Subscription",
    "UpdateReason",
    "ViewerClient",
    "ViewerConfig",
    "ViewerSnapshot",
    "VisitorSession",
    "derive_speaker_view",
]
