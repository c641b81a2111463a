"""Short-lived, dismissible notices raised by user actions."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from lofviewer.models._base import LofBaseModel


class NoticeKind(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notice(LofBaseModel):
    kind: NoticeKind
    code: str | None = None
    message: str = ""
    context: dict[str, Any] = Field(default_factory=dict)
    created_at: int = 0
    expires_at: int = 0
