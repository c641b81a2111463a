"""High-level async client for the light show viewer."""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from lofviewer._api.controller import ControllerAdapter
from lofviewer._api.show import ShowAdapter
from lofviewer._api.speaker import SpeakerAdapter
from lofviewer._constants import COUNTDOWN_TICK_S
from lofviewer._transport import HttpTransport, Transport
from lofviewer.config import ViewerConfig
from lofviewer.exceptions import LofError
from lofviewer.gating import SingleFlight, SongCooldowns
from lofviewer.models._base import now_ms
from lofviewer.models.envelope import ErrorCode
from lofviewer.models.requests import ActionResult, SongRequestResult
from lofviewer.models.session import RecentRequest, VisitorRecord
from lofviewer.models.show import Song
from lofviewer.notices import NoticeBoard
from lofviewer.persistence import SessionStore
from lofviewer.poller import Poller
from lofviewer.speaker import SpeakerCoordinator
from lofviewer.state.connectivity import ConnectivityState
from lofviewer.state.events import Subscription, UpdateReason
from lofviewer.state.store import DerivedState, StateMachine, ViewerSnapshot

_logger = logging.getLogger(__name__)


class ViewerClient:
    """Async client for the light show viewer.

    Usage::

        async with ViewerClient(ViewerConfig.from_env()) as viewer:
            viewer.subscribe(render)
            await viewer.request_song("jingle-bells")

    Owns one :class:`StateMachine` and hands it to the poller and the
    speaker coordinator. User actions go through a single-flight guard:
    while one is in flight, further attempts return ``None``.
    """

    def __init__(
        self,
        config: ViewerConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        clock: Callable[[], int] = now_ms,
        hour_provider: Callable[[], int] | None = None,
        tick_interval: float = COUNTDOWN_TICK_S,
        autostart_polling: bool = True,
    ) -> None:
        self._config = config or ViewerConfig()
        self._external_session = session is not None
        self._http_session = session
        self._autostart_polling = autostart_polling
        self._hour_provider = hour_provider
        self._tick_interval = tick_interval

        self._machine = StateMachine(self._config, clock=clock)
        self._notices = NoticeBoard(self._machine)
        self._cooldowns = SongCooldowns(clock=clock)
        self._single_flight = SingleFlight()
        self._session_store = SessionStore(self._config.session_path) if self._config.session_path else None

        self._show: ShowAdapter | None = None
        self._speaker: SpeakerCoordinator | None = None
        self._poller: Poller | None = None
        if transport is not None:
            self._build(transport)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ViewerClient:
        if self._show is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._build(HttpTransport(self._http_session, timeout=self._config.request_timeout))
        self.restore_session()
        self.speaker.start()
        if self._autostart_polling:
            self.poller.start_polling()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._poller is not None:
            await self._poller.aclose()
        if self._speaker is not None:
            await self._speaker.stop()
        self._notices.dismiss()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _build(self, transport: Transport) -> None:
        self._show = ShowAdapter(transport, self._config.show_base_url)
        speaker_adapter = SpeakerAdapter(transport, self._config.speaker_base_url)
        self._speaker = SpeakerCoordinator(
            self._machine,
            speaker_adapter,
            notices=self._notices,
            hour_provider=self._hour_provider,
            tick_interval=self._tick_interval,
        )
        self._poller = Poller(
            self._machine,
            self._show,
            ControllerAdapter(transport, self._config.controller_base_url),
            speaker_adapter,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def machine(self) -> StateMachine:
        return self._machine

    @property
    def speaker(self) -> SpeakerCoordinator:
        if self._speaker is None:
            raise LofError("Client not initialized. Use 'async with ViewerClient(...) as viewer:'")
        return self._speaker

    @property
    def poller(self) -> Poller:
        if self._poller is None:
            raise LofError("Client not initialized. Use 'async with ViewerClient(...) as viewer:'")
        return self._poller

    @property
    def notices(self) -> NoticeBoard:
        return self._notices

    @property
    def cooldowns(self) -> SongCooldowns:
        return self._cooldowns

    def _require_show(self) -> ShowAdapter:
        if self._show is None:
            raise LofError("Client not initialized. Use 'async with ViewerClient(...) as viewer:'")
        return self._show

    def get_state(self) -> ViewerSnapshot:
        return self._machine.get_state()

    def get_derived_state(self) -> DerivedState:
        return self._machine.get_derived_state()

    def subscribe(self, callback: Callable[[ViewerSnapshot], None]) -> Subscription:
        return self._machine.subscribe_to_state(callback)

    async def refresh(self) -> ConnectivityState:
        """Run one fetch-all cycle right now."""
        return await self.poller.fetch_all()

    # ------------------------------------------------------------------
    # Session persistence
    # ------------------------------------------------------------------

    def restore_session(self) -> None:
        if self._session_store is None:
            return
        record = self._session_store.load(self._machine.now())
        if record is None:
            return
        visitor = self._machine.get_state().visitor.model_copy(
            update={"visitor_id": record.visitor_id, "recent_request": record.recent_request},
        )
        self._machine.set_state({"visitor": visitor}, UpdateReason.SESSION_RESTORED)

    def save_session(self) -> None:
        if self._session_store is None:
            return
        visitor = self._machine.get_state().visitor
        self._session_store.save(VisitorRecord(visitor_id=visitor.visitor_id, recent_request=visitor.recent_request))

    # ------------------------------------------------------------------
    # Song actions
    # ------------------------------------------------------------------

    async def request_song(self, song_id: str) -> ActionResult | None:
        """Request *song_id*. Returns ``None`` when another action is in flight."""
        return await self._single_flight.run(lambda: self._guarded(self._request_song(song_id)))

    async def surprise_me(self) -> ActionResult | None:
        """Request a random song among those currently offered."""
        return await self._single_flight.run(lambda: self._guarded(self._surprise_me()))

    async def vote_song(self, song_id: str) -> ActionResult | None:
        return await self._single_flight.run(lambda: self._guarded(self._vote_song(song_id)))

    async def _request_song(self, song_id: str) -> ActionResult:
        if self._cooldowns.is_cooling(song_id):
            return self._fail(
                ErrorCode.COOLDOWN,
                song_id=song_id,
                remaining_seconds=self._cooldowns.remaining_seconds(song_id),
            )

        show = self._machine.get_state().show_data
        song: Song | None = None
        if show is not None:
            song = show.find_song(song_id)
            if song is None or not song.is_available:
                return self._fail(ErrorCode.UNAVAILABLE, song_id=song_id)
            if show.is_queued(song_id):
                return self._fail(ErrorCode.DUPLICATE, song_id=song_id)

        title = song.title if song is not None else None
        return await self._submit_request(song_id, title, UpdateReason.SONG_REQUESTED)

    async def _surprise_me(self) -> ActionResult:
        show = self._machine.get_state().show_data
        candidates = show.requestable_songs() if show is not None else []
        if not candidates:
            return self._fail(ErrorCode.NO_SONGS)
        song = random.choice(candidates)
        return await self._submit_request(song.song_id, song.title, UpdateReason.SURPRISE_ME)

    async def _submit_request(self, song_id: str, title: str | None, reason: UpdateReason) -> ActionResult:
        visitor_id = self._machine.get_state().visitor.visitor_id
        envelope = await self._require_show().request_song(song_id, visitor_id)
        if not envelope.success:
            return self._fail(envelope.error_code or ErrorCode.UNKNOWN, envelope.error, song_id=song_id)

        result = envelope.data if isinstance(envelope.data, SongRequestResult) else SongRequestResult()
        position = result.queue_position or 0
        visitor = self._machine.get_state().visitor
        recent = RecentRequest(
            song_id=song_id,
            title=title or "Unknown Song",
            timestamp=self._machine.now(),
            queue_position=position,
        )
        self._machine.set_state(
            {
                "visitor": visitor.model_copy(
                    update={"recent_request": recent, "interaction_count": visitor.interaction_count + 1},
                )
            },
            reason,
        )
        self._cooldowns.start(song_id)
        self.save_session()
        self._notices.success(str(reason), song_id=song_id, title=recent.title, position=position or "?")
        return ActionResult.succeeded(recent, song_id=song_id, queue_position=position)

    async def _vote_song(self, song_id: str) -> ActionResult:
        visitor_id = self._machine.get_state().visitor.visitor_id
        envelope = await self._require_show().vote_song(song_id, visitor_id)
        if not envelope.success:
            return self._fail(envelope.error_code or ErrorCode.UNKNOWN, envelope.error, song_id=song_id)
        self._machine.track_user_action("vote")
        self._notices.success(UpdateReason.SONG_VOTED, song_id=song_id)
        return ActionResult.succeeded(envelope.data, song_id=song_id)

    # ------------------------------------------------------------------
    # Speaker actions
    # ------------------------------------------------------------------

    async def enable_speaker(self) -> ActionResult | None:
        return await self._single_flight.run(
            lambda: self._speaker_action(self.speaker.enable_speaker(), "SPEAKER_ON"),
        )

    async def extend_speaker(self) -> ActionResult | None:
        return await self._single_flight.run(
            lambda: self._speaker_action(self.speaker.extend_speaker(), "SPEAKER_EXTENDED"),
        )

    def confirm_proximity(self) -> None:
        self.speaker.confirm_proximity()
        self._notices.success("PROXIMITY_CONFIRMED")

    async def _speaker_action(self, action: Awaitable[ActionResult], success_code: str) -> ActionResult:
        try:
            result = await action
        except Exception:
            _logger.exception("Speaker command failed unexpectedly")
            return self._fail(ErrorCode.SPEAKER_FAILED)
        if result.success:
            self._notices.success(success_code, result.message or "")
        else:
            self._notices.error(result.error_code, result.message or "")
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _guarded(self, action: Awaitable[ActionResult]) -> ActionResult:
        try:
            return await action
        except Exception:
            _logger.exception("User action failed unexpectedly")
            return self._fail(ErrorCode.UNKNOWN)

    def _fail(self, code: str, message: str | None = None, **context: Any) -> ActionResult:
        self._notices.error(str(code), message or "", **context)
        return ActionResult.failed(code, message, **context)

    def dismiss_notice(self) -> None:
        self._notices.dismiss()
