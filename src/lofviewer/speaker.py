"""Speaker session coordination.

The module-level functions are pure: they look only at the speaker
sub-state, the latest controller status and the local hour. The
:class:`SpeakerCoordinator` applies them to the live state machine,
sends enable/extend commands and runs the one-second countdown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from lofviewer._api.speaker import SpeakerAdapter
from lofviewer._constants import (
    COUNTDOWN_CAUTION_S,
    COUNTDOWN_TICK_S,
    EXTENSION_WINDOW_S,
    GEO_BLOCKED_TIER,
    PHYSICAL_NOTICE_DEBOUNCE_MS,
)
from lofviewer.models.controller import ControllerStatus
from lofviewer.models.envelope import ErrorCode, ResultEnvelope
from lofviewer.models.requests import ActionResult
from lofviewer.models.speaker import SpeakerDenial, SpeakerDisplayMode, SpeakerSession, SpeakerView
from lofviewer.notices import NoticeBoard
from lofviewer.state.events import Subscription, UpdateReason
from lofviewer.state.store import StateMachine, ViewerSnapshot

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GuardResult:
    allowed: bool
    reason: SpeakerDenial | None = None


ALLOWED = GuardResult(allowed=True)


def _local_hour() -> int:
    return datetime.now().hour


def controller_playing(speaker: SpeakerSession, controller: ControllerStatus | None) -> bool:
    """Whether the show is playing, preferring the controller feed."""
    if controller is not None:
        return controller.is_playing
    return speaker.fpp_playing


def format_countdown(seconds: int) -> str:
    if seconds <= 0:
        return "0:00"
    return f"{seconds // 60}:{seconds % 60:02d}"


def countdown_level(seconds: int) -> str:
    if seconds <= EXTENSION_WINDOW_S:
        return "warning"
    if seconds <= COUNTDOWN_CAUTION_S:
        return "caution"
    return "normal"


def in_extension_window(speaker: SpeakerSession) -> bool:
    return 0 < speaker.remaining_seconds <= EXTENSION_WINDOW_S


def needs_proximity_confirmation(speaker: SpeakerSession) -> bool:
    return speaker.proximity_tier >= GEO_BLOCKED_TIER and not speaker.proximity_confirmed


def can_use_speaker(speaker: SpeakerSession, controller: ControllerStatus | None, hour: int) -> GuardResult:
    """Guard for switching the speaker on, checked in priority order."""
    if speaker.config.curfew_active(hour):
        return GuardResult(False, SpeakerDenial.CURFEW)
    if speaker.enabled:
        return GuardResult(False, SpeakerDenial.ALREADY_ON)
    if not controller_playing(speaker, controller):
        return GuardResult(False, SpeakerDenial.FPP_OFFLINE)
    if needs_proximity_confirmation(speaker):
        return GuardResult(False, SpeakerDenial.GEO_BLOCKED)
    return ALLOWED


def can_extend_speaker(speaker: SpeakerSession) -> GuardResult:
    """Guard for extending a running session, checked in priority order."""
    if not speaker.enabled:
        return GuardResult(False, SpeakerDenial.NOT_ON)
    if speaker.graceful_shutoff:
        return GuardResult(False, SpeakerDenial.PROTECTION_MODE)
    if not in_extension_window(speaker):
        return GuardResult(False, SpeakerDenial.NOT_IN_EXTENSION_WINDOW)
    if speaker.max_session_reached or speaker.lifetime_cap_reached:
        return GuardResult(False, SpeakerDenial.SESSION_CAP)
    return ALLOWED


def derive_speaker_view(
    speaker: SpeakerSession,
    controller: ControllerStatus | None,
    hour: int,
) -> SpeakerView:
    """Project the speaker card for one snapshot.

    While off, the first blocking condition picks the mode: curfew, then
    a far-away visitor (tier 4 and up), then a show that is not playing.
    While on, a graceful shutoff wins and its countdown comes from the
    controller, not from the local tick.
    """
    emphasize = False
    countdown = 0

    if not speaker.enabled:
        if speaker.config.curfew_active(hour):
            mode, button, emphasize = SpeakerDisplayMode.CURFEW, False, True
        elif speaker.proximity_tier >= GEO_BLOCKED_TIER:
            mode, button, emphasize = SpeakerDisplayMode.GEO_BLOCKED, False, True
        elif not controller_playing(speaker, controller):
            mode, button = SpeakerDisplayMode.FPP_OFFLINE, False
        else:
            mode, button = SpeakerDisplayMode.OFF, True
    elif speaker.graceful_shutoff:
        mode, button = SpeakerDisplayMode.PROTECTION, False
        countdown = controller.seconds_remaining if controller is not None else speaker.remaining_seconds
    elif in_extension_window(speaker):
        mode, button = SpeakerDisplayMode.EXTENSION, not speaker.max_session_reached
        countdown = speaker.remaining_seconds
    else:
        mode, button = SpeakerDisplayMode.ACTIVE, False
        countdown = speaker.remaining_seconds

    return SpeakerView(
        display_mode=mode,
        is_speaker_on=speaker.enabled,
        button_enabled=button,
        emphasize_alternatives=emphasize,
        show_countdown=countdown > 0,
        countdown_seconds=max(0, countdown),
        countdown_label=format_countdown(countdown),
        countdown_level=countdown_level(countdown),
        show_proximity_confirm=needs_proximity_confirmation(speaker),
        proximity_tier=speaker.proximity_tier,
    )


def _current_task() -> asyncio.Task[None] | None:
    try:
        return asyncio.current_task()  # type: ignore[return-value]
    except RuntimeError:
        return None


class SpeakerCoordinator:
    """Drives the speaker sub-state of a :class:`StateMachine`.

    The countdown task runs exactly while the observed speaker state is
    enabled with time left; start/stop is re-evaluated after every state
    update, whichever action caused it.
    """

    def __init__(
        self,
        machine: StateMachine,
        adapter: SpeakerAdapter,
        *,
        notices: NoticeBoard | None = None,
        hour_provider: Callable[[], int] | None = None,
        tick_interval: float = COUNTDOWN_TICK_S,
    ) -> None:
        self._machine = machine
        self._adapter = adapter
        self._notices = notices
        self._hour = hour_provider or _local_hour
        self._tick_interval = tick_interval
        self._subscription: Subscription | None = None
        self._countdown_task: asyncio.Task[None] | None = None
        self._last_speaker: SpeakerSession | None = None
        self._last_physical_notice_at = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = self._machine.subscribe_to_state(self._on_state)
        self._on_state(self._machine.get_state())

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        task = self._countdown_task
        self._countdown_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    @property
    def countdown_running(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def view(self) -> SpeakerView:
        state = self._machine.get_state()
        return derive_speaker_view(state.speaker, state.controller_data, self._hour())

    def can_use_speaker(self) -> GuardResult:
        state = self._machine.get_state()
        return can_use_speaker(state.speaker, state.controller_data, self._hour())

    def can_extend_speaker(self) -> GuardResult:
        return can_extend_speaker(self._machine.get_state().speaker)

    def needs_proximity_confirmation(self) -> bool:
        return needs_proximity_confirmation(self._machine.get_state().speaker)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def confirm_proximity(self) -> None:
        self._machine.set_proximity_confirmed(True)
        self._machine.track_user_action("proximity_confirmed")

    async def enable_speaker(self) -> ActionResult:
        guard = self.can_use_speaker()
        if not guard.allowed:
            return ActionResult.failed(guard.reason or ErrorCode.SPEAKER_FAILED)
        self._machine.track_user_action("speaker_enable")
        confirmed = self._machine.get_state().speaker.proximity_confirmed
        envelope = await self._adapter.enable(extension=False, proximity_confirmed=confirmed)
        return self._apply_command_result(envelope)

    async def extend_speaker(self) -> ActionResult:
        guard = self.can_extend_speaker()
        if not guard.allowed:
            return ActionResult.failed(guard.reason or ErrorCode.SPEAKER_FAILED)
        self._machine.track_user_action("speaker_extend")
        confirmed = self._machine.get_state().speaker.proximity_confirmed
        envelope = await self._adapter.enable(extension=True, proximity_confirmed=confirmed)
        return self._apply_command_result(envelope)

    def _apply_command_result(self, envelope: ResultEnvelope) -> ActionResult:
        if envelope.success and self._machine.set_speaker_state(envelope):
            speaker = self._machine.get_state().speaker
            return ActionResult.succeeded(speaker, message=speaker.message or None)

        code = envelope.error_code or ErrorCode.SPEAKER_FAILED
        if code == ErrorCode.PROXIMITY_REQUIRED:
            self._machine.set_proximity_confirmed(False)
        _logger.debug("Speaker command failed: %s", code)
        return ActionResult.failed(code, envelope.error)

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """Advance the local countdown by one second.

        Returns whether the countdown should keep running. During a
        graceful shutoff the value is left alone: the controller feed is
        authoritative until the speaker switches off.
        """
        speaker = self._machine.get_state().speaker
        if not speaker.enabled or speaker.remaining_seconds <= 0:
            return False
        if speaker.graceful_shutoff:
            return True

        remaining = speaker.remaining_seconds - 1
        self._machine.set_state(
            {"speaker": speaker.model_copy(update={"remaining_seconds": remaining})},
            UpdateReason.SPEAKER_TICK,
        )
        if remaining == EXTENSION_WINDOW_S and not speaker.max_session_reached and self._notices is not None:
            self._notices.info("SESSION_ENDING_SOON", remaining_seconds=remaining)
        return remaining > 0

    async def _run_countdown(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._tick_interval)
                if not self.tick():
                    break
        finally:
            if self._countdown_task is _current_task():
                self._countdown_task = None

    def _sync_countdown(self, speaker: SpeakerSession) -> None:
        should_run = speaker.enabled and speaker.remaining_seconds > 0
        running = self.countdown_running

        if should_run and not running:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                _logger.debug("No running loop; countdown not scheduled")
                return
            self._countdown_task = loop.create_task(self._run_countdown())
        elif not should_run and running:
            task = self._countdown_task
            self._countdown_task = None
            # A task stopping itself just falls out of its loop.
            if task is not None and task is not _current_task():
                task.cancel()

    def _on_state(self, snapshot: ViewerSnapshot) -> None:
        speaker = snapshot.speaker
        previous = self._last_speaker
        self._last_speaker = speaker
        self._sync_countdown(speaker)

        if previous is None or previous.enabled or not speaker.enabled or speaker.source != "physical":
            return
        now = self._machine.now()
        if now - self._last_physical_notice_at > PHYSICAL_NOTICE_DEBOUNCE_MS and self._notices is not None:
            self._last_physical_notice_at = now
            self._notices.info("PHYSICAL_BUTTON", "Someone pressed the speaker button at the show")
