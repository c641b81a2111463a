"""Shared helpers for the upstream adapter modules.

This module centralizes the boundary conversion: adapters raise
lofviewer exceptions internally, and :func:`enveloped` turns the outcome
into a :class:`ResultEnvelope`.

It is internal to lofviewer and may change at any time.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from lofviewer.exceptions import LofApiError, LofConfigError, LofTransportError
from lofviewer.models.envelope import ErrorCode, ResultEnvelope

_logger = logging.getLogger(__name__)


def build_url(base_url: str, path: str, *, adapter: str) -> str:
    """Join *base_url* and *path*; an empty base URL is a config error."""
    base = (base_url or "").strip()
    if not base:
        raise LofConfigError(f"{adapter} base URL not configured")
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def unwrap_data(body: Any) -> Any:
    """Return ``body["data"]`` for wrapped proxy responses, else *body*."""
    if isinstance(body, Mapping) and "data" in body and body["data"] is not None:
        return body["data"]
    return body


async def enveloped(endpoint: str, call: Callable[[], Awaitable[Any]]) -> ResultEnvelope:
    """Await *call* and wrap its result (or failure) in an envelope."""
    try:
        data = await call()
    except LofConfigError as exc:
        return ResultEnvelope.fail(ErrorCode.CONFIG_ERROR, str(exc))
    except LofTransportError as exc:
        _logger.debug("%s transport failure: %s", endpoint, exc)
        code = ErrorCode.HTTP_ERROR if exc.status_code is not None else ErrorCode.NETWORK_ERROR
        return ResultEnvelope.fail(code, str(exc))
    except LofApiError as exc:
        _logger.debug("%s rejected: code=%s %s", endpoint, exc.code, exc)
        return ResultEnvelope.fail(exc.code or ErrorCode.UNKNOWN, str(exc))
    except Exception as exc:  # noqa: BLE001 - adapters never raise past this point
        _logger.debug("%s failed", endpoint, exc_info=True)
        return ResultEnvelope.fail(ErrorCode.NETWORK_ERROR, str(exc) or type(exc).__name__)
    return ResultEnvelope.ok(data)
