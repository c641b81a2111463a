from __future__ import annotations

import pytest

from lofviewer.models.controller import ControllerStatus
from lofviewer.models.envelope import ErrorCode, ResultEnvelope
from lofviewer.models.show import ShowDetails, ShowStatus
from lofviewer.state.connectivity import (
    ConnectivityState,
    FailureCounters,
    compute_health_score,
    determine_connectivity_state,
)

NOW = 1_700_000_000_000


def _show(status: ShowStatus = ShowStatus.ACTIVE, *, requests_enabled: bool = True, age: int = 0) -> ResultEnvelope:
    return ResultEnvelope.ok(
        ShowDetails(show_status=status, requests_enabled=requests_enabled),
        timestamp=NOW - age,
    )


def _controller(mode: str = "playing", *, age: int = 0, **extra: object) -> ResultEnvelope:
    return ResultEnvelope.ok(ControllerStatus(mode=mode, **extra), timestamp=NOW - age)


def _failed(age: int = 0) -> ResultEnvelope:
    return ResultEnvelope.fail(ErrorCode.NETWORK_ERROR, "down", timestamp=NOW - age)


def test_offline_when_both_feeds_failed_three_times() -> None:
    state = determine_connectivity_state(
        _show(),
        _controller(),
        FailureCounters(show=3, controller=3),
        now_ms=NOW,
    )
    assert state == ConnectivityState.OFFLINE


def test_one_feed_failing_repeatedly_is_degraded_not_offline() -> None:
    state = determine_connectivity_state(
        _failed(),
        _controller(),
        FailureCounters(show=5, controller=0),
        now_ms=NOW,
    )
    assert state == ConnectivityState.DEGRADED


@pytest.mark.parametrize(
    ("show_age", "controller_age", "expected"),
    [
        (60_001, 0, ConnectivityState.DEGRADED),
        (0, 60_001, ConnectivityState.DEGRADED),
        (60_000, 60_000, ConnectivityState.ACTIVE),
    ],
)
def test_stale_envelope_degrades_even_when_successful(
    show_age: int, controller_age: int, expected: ConnectivityState
) -> None:
    state = determine_connectivity_state(
        _show(age=show_age),
        _controller(age=controller_age),
        FailureCounters(),
        now_ms=NOW,
    )
    assert state == expected


def test_missing_envelope_counts_as_stale() -> None:
    state = determine_connectivity_state(None, _controller(), FailureCounters(), now_ms=NOW)
    assert state == ConnectivityState.DEGRADED


def test_ended_show_wins_over_active_controller() -> None:
    state = determine_connectivity_state(_show(ShowStatus.ENDED), _controller(), FailureCounters(), now_ms=NOW)
    assert state == ConnectivityState.ENDED


@pytest.mark.parametrize(
    ("mode", "expected"),
    [
        ("playing", ConnectivityState.ACTIVE),
        ("idle", ConnectivityState.ACTIVE),
        ("stopped", ConnectivityState.IDLE),
    ],
)
def test_active_requires_running_controller(mode: str, expected: ConnectivityState) -> None:
    state = determine_connectivity_state(_show(), _controller(mode), FailureCounters(), now_ms=NOW)
    assert state == expected


def test_controller_viewer_control_flag_overrides_show_feed() -> None:
    state = determine_connectivity_state(
        _show(requests_enabled=True),
        _controller("playing", viewer_control_enabled=False),
        FailureCounters(),
        now_ms=NOW,
    )
    assert state == ConnectivityState.IDLE


def test_single_failure_without_data_stays_loading() -> None:
    state = determine_connectivity_state(
        _failed(),
        _controller(),
        FailureCounters(show=1),
        now_ms=NOW,
    )
    assert state == ConnectivityState.LOADING


def test_failure_counters_reset_on_success() -> None:
    counters = FailureCounters(show=2, controller=1)
    assert counters.advance(show_ok=True, controller_ok=False) == FailureCounters(show=0, controller=2)


def test_health_score_deductions_and_floor() -> None:
    healthy = compute_health_score(
        show_error=None,
        controller_error=None,
        show_age_ms=0,
        controller_age_ms=0,
        failures=FailureCounters(),
    )
    assert healthy == 100

    stale = compute_health_score(
        show_error="down",
        controller_error=None,
        show_age_ms=61_000,
        controller_age_ms=0,
        failures=FailureCounters(show=2),
    )
    assert stale == 100 - 20 - 15 - 15 - 10

    floor = compute_health_score(
        show_error="down",
        controller_error="down",
        show_age_ms=120_000,
        controller_age_ms=120_000,
        failures=FailureCounters(show=20, controller=20),
    )
    assert floor == 0
