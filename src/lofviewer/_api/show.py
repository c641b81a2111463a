"""Show-control (request queue) adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lofviewer._api._common import build_url, enveloped, unwrap_data
from lofviewer._transport import Transport
from lofviewer.exceptions import LofApiError
from lofviewer.models.envelope import ErrorCode, ResultEnvelope
from lofviewer.models.requests import SongRequestPayload, SongRequestResult
from lofviewer.models.show import QueueEntry, ShowDetails, ShowStatus, Song

_NORMALIZED_KEYS = frozenset({"availableSongs", "available_songs", "showStatus", "show_status"})


def _song_from_sequence(seq: Mapping[str, Any] | None) -> Song | None:
    if not seq or not seq.get("name"):
        return None
    visible = seq.get("visible") is not False
    active = seq.get("active") is not False
    return Song(
        song_id=str(seq["name"]),
        title=seq.get("displayName") or seq.get("name") or "Untitled",
        artist=seq.get("artist") or None,
        duration=seq.get("duration") or 0,
        category=seq.get("category") or "general",
        is_available=visible and active,
    )


def normalize_show_details(raw: Mapping[str, Any]) -> ShowDetails:
    """Normalize a show payload into :class:`ShowDetails`.

    Accepts either an already-normalized payload (``availableSongs``,
    ``showStatus`` ...) or the raw show-control shape with ``sequences``,
    ``requests``, ``playingNow``, ``playingNext`` and ``preferences``.
    """
    if raw.keys() & _NORMALIZED_KEYS:
        return ShowDetails.model_validate(dict(raw))

    sequences = [s for s in raw.get("sequences") or [] if isinstance(s, Mapping)]
    by_name = {s.get("name"): s for s in sequences if s.get("name")}

    raw_requests = [r for r in raw.get("requests") or [] if isinstance(r, Mapping)]
    queue: list[QueueEntry] = []
    for index, req in enumerate(raw_requests):
        seq = req.get("sequence") if isinstance(req.get("sequence"), Mapping) else {}
        position = req.get("position")
        queue.append(
            QueueEntry(
                song_id=seq.get("name"),
                title=seq.get("displayName") or seq.get("name") or "Requested song",
                artist=seq.get("artist") or "",
                requested_by=(
                    req.get("viewerRequested") or req.get("requesterName") or req.get("visitor_name") or "Guest"
                ),
                position=position if isinstance(position, int) else index + 1,
            )
        )

    now_playing = _song_from_sequence(by_name.get(raw.get("playingNow")))
    next_seq = by_name.get(raw.get("playingNext"))
    if next_seq is None and raw_requests and isinstance(raw_requests[0].get("sequence"), Mapping):
        next_seq = raw_requests[0]["sequence"]
    up_next = _song_from_sequence(next_seq)

    available = [
        song
        for song in (_song_from_sequence(s) for s in sequences)
        if song is not None and song.is_available
    ]

    prefs = raw.get("preferences") if isinstance(raw.get("preferences"), Mapping) else {}
    viewer_control = prefs.get("viewerControlEnabled")
    if raw.get("showStatus"):
        status = ShowStatus(raw["showStatus"])
    elif not sequences:
        status = ShowStatus.IDLE
    elif viewer_control is False:
        status = ShowStatus.RUNNING_NO_CONTROL
    else:
        status = ShowStatus.ACTIVE

    return ShowDetails(
        now_playing=now_playing,
        up_next=up_next,
        queue=tuple(queue),
        available_songs=tuple(available),
        show_status=status,
        requests_enabled=bool(viewer_control),
    )


def _parse_request_response(endpoint: str, http_status: int, body: Any) -> SongRequestResult:
    if not body or not isinstance(body, Mapping):
        raise LofApiError(
            "Empty response from request proxy",
            code=ErrorCode.RF_REQUEST_EMPTY,
            endpoint=endpoint,
        )
    status = body.get("status")
    if not isinstance(status, int) or isinstance(status, bool):
        status = http_status
    if not 200 <= status < 300 or body.get("success") is False:
        raise LofApiError(
            str(body.get("error") or body.get("message") or "Song request failed"),
            code=str(body.get("errorCode") or ErrorCode.RF_REQUEST_FAILED),
            endpoint=endpoint,
        )
    data = body.get("data")
    return SongRequestResult.model_validate(data if isinstance(data, Mapping) else {})


class ShowAdapter:
    """Show feed plus the request/vote actions."""

    def __init__(self, transport: Transport, base_url: str) -> None:
        self._transport = transport
        self._base_url = base_url

    async def get_show_details(self) -> ResultEnvelope:
        async def _call() -> ShowDetails:
            url = build_url(self._base_url, "/show", adapter="Show")
            body = await self._transport.get_json(url)
            if not isinstance(body, Mapping) or body.get("success") is False:
                message = body.get("message") if isinstance(body, Mapping) else None
                raise LofApiError(
                    str(message or "Show service returned an error"),
                    code=ErrorCode.RF_ADAPTER_ERROR,
                    endpoint=url,
                )
            raw = unwrap_data(body)
            if not isinstance(raw, Mapping):
                raise LofApiError("Show payload is not an object", code=ErrorCode.RF_ADAPTER_ERROR, endpoint=url)
            return normalize_show_details(raw)

        return await enveloped("show", _call)

    async def request_song(self, song_id: str, visitor_id: str | None = None) -> ResultEnvelope:
        return await self._submit("/request", song_id, visitor_id)

    async def vote_song(self, song_id: str, visitor_id: str | None = None) -> ResultEnvelope:
        return await self._submit("/vote", song_id, visitor_id)

    async def _submit(self, path: str, song_id: str, visitor_id: str | None) -> ResultEnvelope:
        async def _call() -> SongRequestResult:
            url = build_url(self._base_url, path, adapter="Show")
            payload = SongRequestPayload(song_id=song_id, visitor_id=visitor_id).to_payload()
            status, body = await self._transport.post_json(url, payload)
            return _parse_request_response(url, status, body)

        return await enveloped(path.strip("/"), _call)
