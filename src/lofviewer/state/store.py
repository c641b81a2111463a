"""The viewer state machine.

This is the only component allowed to mutate the viewer snapshot. It is
constructed once per client and handed to collaborators explicitly.
"""

from __future__ import annotations

import json
import logging
import secrets
from collections import deque
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lofviewer._constants import FRESH_WITHIN_MS, HISTORY_LIMIT
from lofviewer._redact import redact_for_log
from lofviewer.config import FeatureFlags, ViewerConfig
from lofviewer.models._base import now_ms
from lofviewer.models.controller import ControllerStatus
from lofviewer.models.envelope import ResultEnvelope
from lofviewer.models.notice import Notice
from lofviewer.models.session import VisitorSession
from lofviewer.models.show import ShowDetails, ShowStatus
from lofviewer.models.speaker import SpeakerSession
from lofviewer.state.connectivity import (
    DISPLAY_STATUS,
    ConnectivityState,
    FailureCounters,
    compute_health_score,
    determine_connectivity_state,
)
from lofviewer.state.events import StateChannel, StateHistoryEntry, Subscription, UpdateReason

_logger = logging.getLogger(__name__)


class FeedErrors(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    show: str | None = None
    controller: str | None = None
    config: str | None = None


class ViewerSnapshot(BaseModel):
    """Canonical, immutable viewer state."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    current_state: ConnectivityState = ConnectivityState.LOADING
    previous_state: ConnectivityState | None = None
    state_entered_at: int = 0

    show_data: ShowDetails | None = None
    controller_data: ControllerStatus | None = None
    last_show_update: int = 0
    last_controller_update: int = 0

    errors: FeedErrors = Field(default_factory=FeedErrors)
    consecutive_failures: FailureCounters = Field(default_factory=FailureCounters)

    visitor: VisitorSession
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    speaker: SpeakerSession = Field(default_factory=SpeakerSession)
    notice: Notice | None = None

    last_updated: int = 0


class DerivedState(BaseModel):
    """UI guard flags projected from a snapshot."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    show_request_button: bool
    show_surprise_me: bool
    show_speaker_button: bool
    show_queue: bool
    show_grid: bool
    can_make_request: bool
    display_status: str
    health_score: int
    is_show_active: bool
    is_data_fresh: bool
    is_in_degraded_mode: bool
    primary_action: str | None
    show_data_age_ms: int
    controller_data_age_ms: int


def generate_visitor_id(now: int) -> str:
    """Opaque visitor id; collisions are possible but negligible."""
    return f"visitor_{now}_{secrets.token_hex(3)}"


class StateMachine:
    """Owns the viewer snapshot, its transition history and subscribers.

    Usage::

        machine = StateMachine(config)
        subscription = machine.subscribe_to_state(render)
        machine.set_state({"notice": None}, "NOTICE_CLEARED")
        subscription.unsubscribe()
    """

    def __init__(
        self,
        config: ViewerConfig | None = None,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._config = config or ViewerConfig()
        self._clock = clock
        self._channel: StateChannel[ViewerSnapshot] = StateChannel()
        self._history: deque[StateHistoryEntry] = deque(maxlen=HISTORY_LIMIT)

        now = self._clock()
        self._snapshot = ViewerSnapshot(
            state_entered_at=now,
            visitor=VisitorSession(visitor_id=generate_visitor_id(now), session_started_at=now),
            features=self._config.features,
            last_updated=now,
        )
        self._record_history(UpdateReason.INIT, None, ConnectivityState.LOADING)

    @property
    def config(self) -> ViewerConfig:
        return self._config

    def now(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    def get_state(self) -> ViewerSnapshot:
        """Return a detached copy of the current snapshot."""
        return self._snapshot.model_copy(deep=True)

    def set_state(self, updates: Mapping[str, Any], reason: str = UpdateReason.STATE_CHANGE) -> None:
        """Shallow-merge *updates* into the snapshot and notify subscribers.

        Only the top-level fields named in *updates* are replaced; sibling
        fields keep their current values. A connectivity change records the
        previous state and a history entry. Subscribers are called in
        registration order before this method returns.
        """
        unknown = set(updates) - set(ViewerSnapshot.model_fields)
        if unknown:
            raise ValueError(f"Unknown snapshot fields: {sorted(unknown)}")

        previous = self._snapshot
        now = self._clock()
        merged = ViewerSnapshot.model_validate({**dict(previous), **updates, "last_updated": now})

        if merged.current_state != previous.current_state:
            merged = merged.model_copy(
                update={"previous_state": previous.current_state, "state_entered_at": now},
            )
            self._record_history(reason, previous.current_state, merged.current_state)
            _logger.info(
                "Connectivity %s -> %s (%s)",
                previous.current_state.value,
                merged.current_state.value,
                reason,
            )

        self._snapshot = merged

        if self._config.debug:
            _logger.debug("Update %s: %s", reason, redact_for_log(_jsonable(updates)))

        self._channel.publish(self.get_state())

    def subscribe_to_state(self, callback: Callable[[ViewerSnapshot], None]) -> Subscription:
        """Register *callback*; the returned token unsubscribes it."""
        return self._channel.subscribe(callback)

    # ------------------------------------------------------------------
    # Derivations
    # ------------------------------------------------------------------

    def determine_state_from_data(
        self,
        show_env: ResultEnvelope | None,
        controller_env: ResultEnvelope | None,
        failures: FailureCounters,
    ) -> ConnectivityState:
        """Connectivity status for a feed pair, evaluated at the current time."""
        return determine_connectivity_state(show_env, controller_env, failures, now_ms=self._clock())

    def get_derived_state(self) -> DerivedState:
        state = self._snapshot
        now = self._clock()
        features = state.features
        show = state.show_data
        is_active = state.current_state == ConnectivityState.ACTIVE

        show_request_button = is_active and features.requests_enabled and show is not None and show.requests_enabled
        show_surprise_me = is_active and features.surprise_me_enabled
        show_age = now - state.last_show_update
        controller_age = now - state.last_controller_update

        if show_request_button:
            primary_action: str | None = "REQUEST_SONG"
        elif show_surprise_me:
            primary_action = "SURPRISE_ME"
        else:
            primary_action = None

        return DerivedState(
            show_request_button=show_request_button,
            show_surprise_me=show_surprise_me,
            show_speaker_button=features.speaker_control_enabled and state.current_state != ConnectivityState.OFFLINE,
            show_queue=show is not None and len(show.queue) > 0,
            show_grid=is_active and show is not None and len(show.available_songs) > 0,
            can_make_request=is_active,
            display_status=DISPLAY_STATUS.get(state.current_state, "Unknown"),
            health_score=compute_health_score(
                show_error=state.errors.show,
                controller_error=state.errors.controller,
                show_age_ms=show_age,
                controller_age_ms=controller_age,
                failures=state.consecutive_failures,
            ),
            is_show_active=show is not None and show.show_status == ShowStatus.ACTIVE,
            is_data_fresh=show_age < FRESH_WITHIN_MS,
            is_in_degraded_mode=state.current_state == ConnectivityState.DEGRADED,
            primary_action=primary_action,
            show_data_age_ms=show_age,
            controller_data_age_ms=controller_age,
        )

    def get_state_history(self) -> tuple[StateHistoryEntry, ...]:
        """Recorded transitions, oldest first."""
        return tuple(self._history)

    # ------------------------------------------------------------------
    # Focused mutations
    # ------------------------------------------------------------------

    def set_speaker_state(self, envelope: ResultEnvelope) -> bool:
        """Replace the speaker sub-state with the server's view.

        The visitor's local proximity confirmation is the only value
        carried over. Returns ``False`` (and changes nothing) for a failed
        or malformed envelope.
        """
        if not envelope.success or not isinstance(envelope.data, SpeakerSession):
            _logger.warning("Ignoring invalid speaker response: %s", envelope.error_code or "no data")
            return False
        speaker = envelope.data.model_copy(
            update={"proximity_confirmed": self._snapshot.speaker.proximity_confirmed},
        )
        self.set_state({"speaker": speaker}, UpdateReason.SPEAKER_STATE_UPDATED)
        return True

    def set_proximity_confirmed(self, confirmed: bool) -> None:
        speaker = self._snapshot.speaker.model_copy(update={"proximity_confirmed": confirmed})
        self.set_state({"speaker": speaker}, UpdateReason.PROXIMITY_CONFIRMED)

    def track_user_action(self, action: str) -> None:
        visitor = self._snapshot.visitor
        _logger.debug("User action %s (#%d)", action, visitor.interaction_count + 1)
        self.set_state(
            {"visitor": visitor.model_copy(update={"interaction_count": visitor.interaction_count + 1})},
            UpdateReason.USER_ACTION,
        )

    def dump_state(self) -> str:
        """JSON debug dump: snapshot, derived flags and the last 10 transitions."""
        return json.dumps(
            {
                "state": redact_for_log(self._snapshot.model_dump(mode="json")),
                "derived": self.get_derived_state().model_dump(mode="json"),
                "history": [entry.model_dump(mode="json") for entry in list(self._history)[-10:]],
            },
            indent=2,
        )

    def _record_history(
        self,
        reason: str,
        from_state: ConnectivityState | None,
        to_state: ConnectivityState | None,
    ) -> None:
        self._history.append(
            StateHistoryEntry(
                timestamp=self._clock(),
                reason=str(reason),
                from_state=from_state.value if from_state is not None else None,
                to_state=to_state.value if to_state is not None else None,
            )
        )


def _jsonable(updates: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: value.model_dump(mode="json") if isinstance(value, BaseModel) else value for key, value in updates.items()
    }
