"""Speaker hardware adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lofviewer._api._common import build_url, enveloped
from lofviewer._transport import Transport
from lofviewer.exceptions import LofApiError
from lofviewer.models.envelope import ErrorCode, ResultEnvelope
from lofviewer.models.requests import SpeakerCommand
from lofviewer.models.speaker import SpeakerSession


def _parse_speaker_body(endpoint: str, http_status: int, body: Any) -> SpeakerSession:
    if not isinstance(body, Mapping):
        raise LofApiError("Empty response from speaker API", code=ErrorCode.SPEAKER_API_FAILED, endpoint=endpoint)
    ok = 200 <= http_status < 300 and bool(body.get("success"))
    data = body.get("data")
    if not ok or not isinstance(data, Mapping):
        raise LofApiError(
            str(body.get("error") or "Speaker API failed"),
            code=str(body.get("errorCode") or ErrorCode.SPEAKER_API_FAILED),
            endpoint=endpoint,
        )
    return SpeakerSession.model_validate(dict(data))


class SpeakerAdapter:
    """Speaker status feed plus the enable/extend command."""

    def __init__(self, transport: Transport, base_url: str) -> None:
        self._transport = transport
        self._base_url = base_url

    async def get_status(self) -> ResultEnvelope:
        async def _call() -> SpeakerSession:
            url = build_url(self._base_url, "/speaker", adapter="Speaker")
            body = await self._transport.get_json(url)
            return _parse_speaker_body(url, 200, body)

        return await enveloped("speaker", _call)

    async def enable(self, *, extension: bool = False, proximity_confirmed: bool = False) -> ResultEnvelope:
        """Ask the hardware to switch on (or extend the running session)."""

        async def _call() -> SpeakerSession:
            url = build_url(self._base_url, "/speaker", adapter="Speaker")
            command = SpeakerCommand(extension=extension, proximity_confirmed=proximity_confirmed)
            status, body = await self._transport.post_json(url, command.to_payload())
            return _parse_speaker_body(url, status, body)

        return await enveloped("speaker_enable", _call)
