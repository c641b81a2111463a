"""State layer.

This package is the single source of truth for the viewer snapshot:
feed results are reconciled into one connectivity status here, and
every mutation goes through :meth:`StateMachine.set_state`.
"""

from lofviewer.state.connectivity import (
    ConnectivityState,
    FailureCounters,
    compute_health_score,
    determine_connectivity_state,
)
from lofviewer.state.events import StateHistoryEntry, Subscription, UpdateReason
from lofviewer.state.store import DerivedState, FeedErrors, StateMachine, ViewerSnapshot

__all__ = [
    "ConnectivityState",
    "DerivedState",
    "FailureCounters",
    "FeedErrors",
    "StateHistoryEntry",
    "StateMachine",
    "Subscription",
    "UpdateReason",
    "ViewerSnapshot",
    "compute_health_score",
    "determine_connectivity_state",
]
