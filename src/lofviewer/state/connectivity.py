"""Connectivity status derivation.

Everything here is a pure function of its arguments; evaluation time is
passed in explicitly so results are reproducible.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from lofviewer._constants import (
    DEGRADED_FAILURE_THRESHOLD,
    FRESH_WITHIN_MS,
    OFFLINE_FAILURE_THRESHOLD,
    STALE_AFTER_MS,
)
from lofviewer.models.controller import ControllerStatus
from lofviewer.models.envelope import ResultEnvelope
from lofviewer.models.show import ShowDetails, ShowStatus


class ConnectivityState(StrEnum):
    LOADING = "LOADING"
    ACTIVE = "ACTIVE"
    DEGRADED = "DEGRADED"
    OFFLINE = "OFFLINE"
    ENDED = "ENDED"
    IDLE = "IDLE"


DISPLAY_STATUS: dict[ConnectivityState, str] = {
    ConnectivityState.LOADING: "Connecting to show...",
    ConnectivityState.ACTIVE: "Show is live!",
    ConnectivityState.DEGRADED: "Limited connectivity",
    ConnectivityState.OFFLINE: "Unable to connect",
    ConnectivityState.ENDED: "Show has ended",
    ConnectivityState.IDLE: "Show is taking a break",
}


class FailureCounters(BaseModel):
    """Consecutive failed polls per feed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    show: int = Field(default=0, ge=0)
    controller: int = Field(default=0, ge=0)

    def advance(self, *, show_ok: bool, controller_ok: bool) -> FailureCounters:
        """Counters after one poll: reset on success, increment on failure."""
        return FailureCounters(
            show=0 if show_ok else self.show + 1,
            controller=0 if controller_ok else self.controller + 1,
        )


def _viewer_control_enabled(show: ShowDetails | None, controller: ControllerStatus | None) -> bool:
    if controller is not None and controller.viewer_control_enabled is not None:
        return controller.viewer_control_enabled
    return show is not None and show.requests_enabled


def determine_connectivity_state(
    show_env: ResultEnvelope | None,
    controller_env: ResultEnvelope | None,
    failures: FailureCounters,
    *,
    now_ms: int,
) -> ConnectivityState:
    """Reconcile both feeds into one :class:`ConnectivityState`.

    First match wins:

    1. ``OFFLINE`` when both feeds failed at least 3 times in a row.
    2. ``DEGRADED`` when either feed failed at least twice, or either
       envelope is older than 60 s (a missing envelope counts as stale).
    3. ``ENDED`` when the show feed reports ``ended``.
    4. Both feeds succeeded: ``ACTIVE`` when viewer control is on and
       the controller is ``playing`` or ``idle``, else ``IDLE``.
    5. ``LOADING``.

    Staleness is checked before success so a succeeding-but-stale feed
    cannot pass as healthy; ``idle`` counts as running so the status does
    not flicker between songs.
    """
    if failures.show >= OFFLINE_FAILURE_THRESHOLD and failures.controller >= OFFLINE_FAILURE_THRESHOLD:
        return ConnectivityState.OFFLINE

    if failures.show >= DEGRADED_FAILURE_THRESHOLD or failures.controller >= DEGRADED_FAILURE_THRESHOLD:
        return ConnectivityState.DEGRADED

    show_age = show_env.age_ms(now_ms) if show_env is not None else now_ms
    controller_age = controller_env.age_ms(now_ms) if controller_env is not None else now_ms
    if show_age > STALE_AFTER_MS or controller_age > STALE_AFTER_MS:
        return ConnectivityState.DEGRADED

    show = show_env.data if show_env is not None and isinstance(show_env.data, ShowDetails) else None
    if show is not None and show.show_status == ShowStatus.ENDED:
        return ConnectivityState.ENDED

    if show_env is not None and controller_env is not None and show_env.success and controller_env.success:
        controller = controller_env.data if isinstance(controller_env.data, ControllerStatus) else None
        if _viewer_control_enabled(show, controller) and controller is not None and controller.is_running:
            return ConnectivityState.ACTIVE
        return ConnectivityState.IDLE

    return ConnectivityState.LOADING


def compute_health_score(
    *,
    show_error: str | None,
    controller_error: str | None,
    show_age_ms: int,
    controller_age_ms: int,
    failures: FailureCounters,
) -> int:
    """0-100 health indicator for the two feeds."""
    score = 100
    if show_error:
        score -= 20
    if controller_error:
        score -= 20
    if show_age_ms > FRESH_WITHIN_MS:
        score -= 15
    if show_age_ms > STALE_AFTER_MS:
        score -= 15
    if controller_age_ms > STALE_AFTER_MS:
        score -= 15
    score -= failures.show * 5
    score -= failures.controller * 5
    return max(0, score)
