"""Uniform result envelope returned by every upstream adapter call."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from lofviewer.models._base import LofBaseModel, now_ms


class ErrorCode(StrEnum):
    """Error codes carried in envelopes and action results."""

    # Transport / adapter
    CONFIG_ERROR = "CONFIG_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    # Adapter domain
    RF_ADAPTER_ERROR = "RF_ADAPTER_ERROR"
    RF_REQUEST_EMPTY = "RF_REQUEST_EMPTY"
    RF_REQUEST_FAILED = "RF_REQUEST_FAILED"
    SPEAKER_API_FAILED = "SPEAKER_API_FAILED"
    PROXIMITY_REQUIRED = "PROXIMITY_REQUIRED"
    # Local only, produced without a network round trip
    COOLDOWN = "COOLDOWN"
    DUPLICATE = "DUPLICATE"
    UNAVAILABLE = "UNAVAILABLE"
    RATE_LIMIT = "RATE_LIMIT"
    NO_SONGS = "NO_SONGS"
    UNKNOWN = "UNKNOWN"
    SPEAKER_FAILED = "SPEAKER_FAILED"


class ResultEnvelope(LofBaseModel):
    """``{success, timestamp, data, error, errorCode}``.

    ``timestamp`` is epoch milliseconds of when the adapter produced the
    envelope; staleness checks compare it against the evaluation time.
    """

    success: bool
    timestamp: int = Field(default_factory=now_ms)
    data: Any = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, data: Any, *, timestamp: int | None = None) -> ResultEnvelope:
        return cls(
            success=True,
            timestamp=now_ms() if timestamp is None else timestamp,
            data=data,
        )

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        data: Any = None,
        timestamp: int | None = None,
    ) -> ResultEnvelope:
        return cls(
            success=False,
            timestamp=now_ms() if timestamp is None else timestamp,
            data=data,
            error=message,
            error_code=str(code),
        )

    def age_ms(self, now: int) -> int:
        return now - self.timestamp
