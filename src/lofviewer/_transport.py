"""JSON-over-HTTP transport used by the upstream adapters."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from lofviewer._constants import USER_AGENT
from lofviewer._redact import redact_for_log
from lofviewer.exceptions import LofTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by adapter modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, url: str) -> Any:
        ...

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> tuple[int, Any]:
        ...


class HttpTransport:
    """aiohttp transport returning decoded JSON bodies."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 10.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_json(self, url: str) -> Any:
        """GET *url* and return the decoded body; non-2xx raises."""
        _logger.debug("GET %s", url)
        status, text = await self._request("GET", url)
        if not 200 <= status < 300:
            raise LofTransportError(
                f"HTTP {status} from {url}: {text[:200]}",
                status_code=status,
                endpoint=url,
            )
        return self._decode(url, text)

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> tuple[int, Any]:
        """POST *payload* to *url*.

        Returns ``(status, body)`` without raising on non-2xx, because
        the request and speaker endpoints report rejections as JSON
        bodies with 4xx statuses. An undecodable body becomes ``None``.
        """
        _logger.debug("POST %s %s", url, redact_for_log(dict(payload)))
        status, text = await self._request("POST", url, body=json.dumps(payload))
        try:
            return status, json.loads(text) if text else None
        except json.JSONDecodeError:
            _logger.debug("Undecodable body from %s (HTTP %d)", url, status)
            return status, None

    async def _request(self, method: str, url: str, *, body: str | None = None) -> tuple[int, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if body is not None:
            headers["content-type"] = "application/json; charset=UTF-8"
        try:
            async with self._http.request(method, url, data=body, headers=headers, timeout=self._timeout) as resp:
                return resp.status, await resp.text()
        except aiohttp.ClientError as exc:
            raise LofTransportError(f"Request to {url} failed: {exc}", endpoint=url) from exc
        except TimeoutError as exc:
            raise LofTransportError(f"Request to {url} timed out", endpoint=url) from exc

    @staticmethod
    def _decode(url: str, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise LofTransportError(f"Invalid JSON from {url}: {text[:200]}", endpoint=url) from exc
