"""Periodic fetch-all cycle over the three upstream feeds."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from lofviewer._api.controller import ControllerAdapter
from lofviewer._api.show import ShowAdapter
from lofviewer._api.speaker import SpeakerAdapter
from lofviewer.models.controller import ControllerStatus
from lofviewer.models.show import ShowDetails
from lofviewer.state.connectivity import ConnectivityState
from lofviewer.state.events import UpdateReason
from lofviewer.state.store import FeedErrors, StateMachine

_logger = logging.getLogger(__name__)


class Poller:
    """Fixed-rate poller feeding one :class:`StateMachine`.

    Every interval a new cycle is started as its own task, so a slow
    upstream does not stretch the schedule. Cycles are not sequenced
    against each other: a slow cycle that completes late still commits
    its (older) results.
    """

    def __init__(
        self,
        machine: StateMachine,
        show: ShowAdapter,
        controller: ControllerAdapter,
        speaker: SpeakerAdapter,
        *,
        interval: float | None = None,
    ) -> None:
        self._machine = machine
        self._show = show
        self._controller = controller
        self._speaker = speaker
        self._interval = machine.config.poll_interval if interval is None else interval
        self._schedule_task: asyncio.Task[None] | None = None
        self._cycles: set[asyncio.Task[ConnectivityState]] = set()

    @property
    def is_polling(self) -> bool:
        return self._schedule_task is not None and not self._schedule_task.done()

    def start_polling(self) -> None:
        """Run a cycle now, then every interval. Calling again is a no-op."""
        if self.is_polling:
            return
        self._schedule_task = asyncio.get_running_loop().create_task(self._schedule())
        _logger.debug("Polling started (every %.1fs)", self._interval)

    def stop_polling(self) -> None:
        """Cancel the schedule. Cycles already in flight still complete."""
        task = self._schedule_task
        self._schedule_task = None
        if task is not None and not task.done():
            task.cancel()
            _logger.debug("Polling stopped")

    async def wait_idle(self) -> None:
        """Wait for in-flight cycles to finish."""
        if self._cycles:
            await asyncio.gather(*list(self._cycles), return_exceptions=True)

    async def _schedule(self) -> None:
        while True:
            cycle = asyncio.get_running_loop().create_task(self.fetch_all())
            self._cycles.add(cycle)
            cycle.add_done_callback(self._cycle_done)
            await asyncio.sleep(self._interval)

    def _cycle_done(self, task: asyncio.Task[ConnectivityState]) -> None:
        self._cycles.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Poll cycle failed", exc_info=exc)

    async def fetch_all(self) -> ConnectivityState:
        """Fetch all three feeds concurrently and commit one update."""
        show_env, controller_env, speaker_env = await asyncio.gather(
            self._show.get_show_details(),
            self._controller.get_status(),
            self._speaker.get_status(),
        )

        # Everything below runs without yielding, so it commits atomically
        # against whatever the snapshot is when this cycle lands.
        current = self._machine.get_state()
        now = self._machine.now()
        failures = current.consecutive_failures.advance(
            show_ok=show_env.success,
            controller_ok=controller_env.success,
        )
        new_state = self._machine.determine_state_from_data(show_env, controller_env, failures)

        if speaker_env.success:
            self._machine.set_speaker_state(speaker_env)

        show_ok = show_env.success and isinstance(show_env.data, ShowDetails)
        controller_ok = controller_env.success and isinstance(controller_env.data, ControllerStatus)
        self._machine.set_state(
            {
                "show_data": show_env.data if show_ok else current.show_data,
                "controller_data": controller_env.data if controller_ok else current.controller_data,
                "last_show_update": now if show_ok else current.last_show_update,
                "last_controller_update": now if controller_ok else current.last_controller_update,
                "errors": FeedErrors(
                    show=show_env.error,
                    controller=controller_env.error,
                    config=current.errors.config,
                ),
                "consecutive_failures": failures,
                "current_state": new_state,
            },
            UpdateReason.POLL_UPDATE,
        )
        if not (show_env.success and controller_env.success):
            _logger.debug(
                "Poll failures show=%s controller=%s (counters %d/%d)",
                show_env.error_code,
                controller_env.error_code,
                failures.show,
                failures.controller,
            )
        return new_state

    async def aclose(self) -> None:
        self.stop_polling()
        for cycle in list(self._cycles):
            cycle.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self.wait_idle()
