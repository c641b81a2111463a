"""Custom exception hierarchy for lofviewer.

Exceptions never escape an upstream adapter: each adapter converts them
into a failed :class:`~lofviewer.models.envelope.ResultEnvelope`.
"""

from __future__ import annotations


class LofError(Exception):
    """Base exception for all lofviewer errors."""


class LofConfigError(LofError):
    """Invalid or missing configuration (e.g. an empty base URL)."""


class LofTransportError(LofError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class LofApiError(LofError):
    """Upstream answered, but reported an application-level failure."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)
