"""Playback controller adapter."""

from __future__ import annotations

from collections.abc import Mapping

from lofviewer._api._common import build_url, enveloped, unwrap_data
from lofviewer._transport import Transport
from lofviewer.exceptions import LofApiError
from lofviewer.models.controller import ControllerStatus
from lofviewer.models.envelope import ErrorCode, ResultEnvelope


class ControllerAdapter:
    """Reads playback status from the lighting controller proxy."""

    def __init__(self, transport: Transport, base_url: str) -> None:
        self._transport = transport
        self._base_url = base_url

    async def get_status(self) -> ResultEnvelope:
        async def _call() -> ControllerStatus:
            url = build_url(self._base_url, "/status", adapter="Controller")
            body = unwrap_data(await self._transport.get_json(url))
            if body is None:
                body = {}
            if not isinstance(body, Mapping):
                raise LofApiError("Controller payload is not an object", code=ErrorCode.NETWORK_ERROR, endpoint=url)
            return ControllerStatus.model_validate(dict(body))

        return await enveloped("controller", _call)
