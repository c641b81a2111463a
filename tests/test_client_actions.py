from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from lofviewer.client import ViewerClient
from lofviewer.config import ViewerConfig
from lofviewer.models.controller import ControllerStatus
from lofviewer.models.envelope import ErrorCode
from lofviewer.models.notice import NoticeKind
from lofviewer.models.session import RecentRequest, VisitorRecord
from lofviewer.models.show import QueueEntry, ShowDetails, ShowStatus, Song
from lofviewer.models.speaker import SpeakerSession
from lofviewer.persistence import SessionStore


class _Clock:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class _FakeTransport:
    def __init__(self, post_response: tuple[int, Any] | None = None) -> None:
        self.post_response = post_response or (200, {"success": True, "data": {"queuePosition": 3}})
        self.posts: list[tuple[str, dict[str, Any]]] = []
        self.gate: asyncio.Event | None = None

    async def get_json(self, url: str) -> Any:
        raise AssertionError(f"unexpected GET {url}")

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> tuple[int, Any]:
        self.posts.append((url, dict(payload)))
        if self.gate is not None:
            await self.gate.wait()
        return self.post_response


def _show(*songs: Song, queue: tuple[QueueEntry, ...] = ()) -> ShowDetails:
    return ShowDetails(
        show_status=ShowStatus.ACTIVE,
        requests_enabled=True,
        available_songs=songs,
        queue=queue,
    )


def _client(
    transport: _FakeTransport,
    *,
    clock: _Clock | None = None,
    session_path: Path | None = None,
    hour: int = 19,
) -> ViewerClient:
    config = ViewerConfig(
        show_base_url="https://show.example/api",
        speaker_base_url="https://show.example/api",
        session_path=str(session_path) if session_path is not None else None,
    )
    client = ViewerClient(
        config,
        transport=transport,
        clock=clock or _Clock(),
        hour_provider=lambda: hour,
        autostart_polling=False,
    )
    client.machine.set_state({"show_data": _show(Song(song_id="jingle", title="Jingle Bells"), Song(song_id="noel"))})
    return client


@pytest.mark.asyncio
async def test_request_song_success_updates_visitor_and_persists(tmp_path: Path) -> None:
    transport = _FakeTransport()
    session_file = tmp_path / "session.json"
    client = _client(transport, session_path=session_file)
    visitor_id = client.get_state().visitor.visitor_id

    result = await client.request_song("jingle")

    assert result is not None and result.success
    assert transport.posts == [
        ("https://show.example/api/request", {"songId": "jingle", "visitorId": visitor_id}),
    ]
    visitor = client.get_state().visitor
    assert visitor.interaction_count == 1
    assert visitor.recent_request is not None
    assert visitor.recent_request.title == "Jingle Bells"
    assert visitor.recent_request.queue_position == 3

    notice = client.get_state().notice
    assert notice is not None and notice.kind == NoticeKind.SUCCESS

    saved = json.loads(session_file.read_text(encoding="utf-8"))
    assert saved["visitorId"] == visitor_id
    assert saved["recentRequest"]["songId"] == "jingle"


@pytest.mark.asyncio
async def test_repeat_request_hits_cooldown_without_network() -> None:
    transport = _FakeTransport()
    clock = _Clock()
    client = _client(transport, clock=clock)

    await client.request_song("jingle")
    clock.now += 4_500
    result = await client.request_song("jingle")

    assert result is not None
    assert result.error_code == ErrorCode.COOLDOWN
    assert result.context["remaining_seconds"] == 11
    assert len(transport.posts) == 1

    clock.now += 11_000
    again = await client.request_song("jingle")
    assert again is not None and again.success
    assert len(transport.posts) == 2


@pytest.mark.asyncio
async def test_request_for_unknown_song_is_unavailable() -> None:
    transport = _FakeTransport()
    client = _client(transport)

    result = await client.request_song("missing")

    assert result is not None
    assert result.error_code == ErrorCode.UNAVAILABLE
    assert transport.posts == []


@pytest.mark.asyncio
async def test_request_for_queued_song_is_duplicate() -> None:
    transport = _FakeTransport()
    client = _client(transport)
    client.machine.set_state(
        {"show_data": _show(Song(song_id="jingle"), queue=(QueueEntry(song_id="jingle", position=1),))},
    )

    result = await client.request_song("jingle")

    assert result is not None
    assert result.error_code == ErrorCode.DUPLICATE
    assert transport.posts == []


@pytest.mark.asyncio
async def test_upstream_rejection_surfaces_code_and_error_notice() -> None:
    transport = _FakeTransport((429, {"success": False, "errorCode": "RATE_LIMIT", "error": "Slow down"}))
    client = _client(transport)

    result = await client.request_song("jingle")

    assert result is not None
    assert result.error_code == ErrorCode.RATE_LIMIT
    assert result.message == "Slow down"
    notice = client.get_state().notice
    assert notice is not None and notice.kind == NoticeKind.ERROR
    # Failed requests never start a cooldown.
    assert not client.cooldowns.is_cooling("jingle")


@pytest.mark.asyncio
async def test_concurrent_actions_are_dropped_while_one_is_in_flight() -> None:
    transport = _FakeTransport()
    transport.gate = asyncio.Event()
    client = _client(transport)

    first = asyncio.create_task(client.request_song("jingle"))
    await asyncio.sleep(0)

    assert await client.request_song("noel") is None
    assert await client.surprise_me() is None

    transport.gate.set()
    result = await first
    assert result is not None and result.success
    assert [payload["songId"] for _url, payload in transport.posts] == ["jingle"]


@pytest.mark.asyncio
async def test_surprise_me_without_songs_fails_locally() -> None:
    transport = _FakeTransport()
    client = _client(transport)
    client.machine.set_state({"show_data": _show(Song(song_id="off", is_available=False))})

    result = await client.surprise_me()

    assert result is not None
    assert result.error_code == ErrorCode.NO_SONGS
    assert transport.posts == []


@pytest.mark.asyncio
async def test_surprise_me_picks_a_random_available_song(monkeypatch: pytest.MonkeyPatch) -> None:
    transport = _FakeTransport()
    client = _client(transport)
    monkeypatch.setattr("lofviewer.client.random.choice", lambda songs: songs[-1])

    result = await client.surprise_me()

    assert result is not None and result.success
    assert transport.posts[0][1]["songId"] == "noel"


@pytest.mark.asyncio
async def test_vote_posts_to_vote_endpoint() -> None:
    transport = _FakeTransport((200, {"success": True, "data": {}}))
    client = _client(transport)

    result = await client.vote_song("noel")

    assert result is not None and result.success
    assert transport.posts[0][0] == "https://show.example/api/vote"
    assert client.get_state().visitor.interaction_count == 1


@pytest.mark.asyncio
async def test_enable_speaker_through_client() -> None:
    transport = _FakeTransport((200, {"success": True, "data": {"enabled": True, "remainingSeconds": 300}}))
    client = _client(transport)
    client.machine.set_state({"controller_data": ControllerStatus(mode="playing")})

    result = await client.enable_speaker()

    assert result is not None and result.success
    assert transport.posts == [
        (
            "https://show.example/api/speaker",
            {"source": "viewer", "extension": False, "proximityConfirmed": False},
        )
    ]
    assert client.get_state().speaker.enabled
    await client.speaker.stop()


@pytest.mark.asyncio
async def test_speaker_denial_posts_error_notice() -> None:
    transport = _FakeTransport()
    client = _client(transport, hour=23)

    result = await client.enable_speaker()

    assert result is not None
    assert result.error_code == "CURFEW"
    notice = client.get_state().notice
    assert notice is not None and notice.code == "CURFEW"
    assert transport.posts == []


def test_restore_session_drops_stale_recent_request(tmp_path: Path) -> None:
    clock = _Clock()
    session_file = tmp_path / "session.json"
    SessionStore(session_file).save(
        VisitorRecord(
            visitor_id="visitor_1_abc123",
            recent_request=RecentRequest(song_id="jingle", timestamp=clock.now - 300_001),
        )
    )
    client = _client(_FakeTransport(), clock=clock, session_path=session_file)

    client.restore_session()

    visitor = client.get_state().visitor
    assert visitor.visitor_id == "visitor_1_abc123"
    assert visitor.recent_request is None


@pytest.mark.asyncio
async def test_context_manager_restores_session_and_starts_speaker(tmp_path: Path) -> None:
    clock = _Clock()
    session_file = tmp_path / "session.json"
    SessionStore(session_file).save(
        VisitorRecord(
            visitor_id="visitor_1_abc123",
            recent_request=RecentRequest(song_id="jingle", title="Jingle Bells", timestamp=clock.now - 1_000),
        )
    )
    client = _client(_FakeTransport(), clock=clock, session_path=session_file)
    client.machine.set_state({"speaker": SpeakerSession(enabled=True, remaining_seconds=100)})

    async with client as viewer:
        state = viewer.get_state()
        assert state.visitor.visitor_id == "visitor_1_abc123"
        assert state.visitor.recent_request is not None
        assert viewer.speaker.countdown_running
        assert not viewer.poller.is_polling

    assert not client.speaker.countdown_running
