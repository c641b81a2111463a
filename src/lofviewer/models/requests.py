"""Request payloads and action responses."""

from __future__ import annotations

from typing import Any, ClassVar

from lofviewer.models._base import LofBaseModel


class SongRequestPayload(LofBaseModel):
    """Body of a request/vote call: ``{songId, visitorId?}``."""

    song_id: str
    visitor_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SongRequestResult(LofBaseModel):
    _KEY_ALIASES: ClassVar[dict[str, str]] = {"queue_position": "queuePosition"}

    queue_position: int | None = None


class SpeakerCommand(LofBaseModel):
    """Body of a speaker enable/extend call."""

    source: str = "viewer"
    extension: bool = False
    proximity_confirmed: bool = False

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ActionResult(LofBaseModel):
    """Outcome of a user action (request, surprise-me, speaker command).

    Local denials carry an ``error_code`` and never touch the network.
    """

    success: bool
    error_code: str | None = None
    message: str | None = None
    context: dict[str, Any] = {}
    data: Any = None

    @classmethod
    def succeeded(cls, data: Any = None, *, message: str | None = None, **context: Any) -> ActionResult:
        return cls(success=True, data=data, message=message, context=context)

    @classmethod
    def failed(cls, code: str, message: str | None = None, **context: Any) -> ActionResult:
        return cls(success=False, error_code=str(code), message=message, context=context)
