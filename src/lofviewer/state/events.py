"""State change notifications and transition history.

Subscribers register on a :class:`StateChannel` and get back a
:class:`Subscription` token. Fan-out is synchronous: every callback has
run (or had its exception logged) by the time :meth:`StateChannel.publish`
returns. A callback may itself cause another publish; that nested
publish runs to completion first.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpdateReason(StrEnum):
    INIT = "INIT"
    STATE_CHANGE = "STATE_CHANGE"
    POLL_UPDATE = "POLL_UPDATE"
    SPEAKER_STATE_UPDATED = "SPEAKER_STATE_UPDATED"
    SPEAKER_TICK = "SPEAKER_TICK"
    PROXIMITY_CONFIRMED = "PROXIMITY_CONFIRMED"
    SONG_REQUESTED = "SONG_REQUESTED"
    SONG_VOTED = "SONG_VOTED"
    SURPRISE_ME = "SURPRISE_ME"
    SESSION_RESTORED = "SESSION_RESTORED"
    USER_ACTION = "USER_ACTION"
    NOTICE = "NOTICE"
    NOTICE_CLEARED = "NOTICE_CLEARED"


class StateHistoryEntry(BaseModel):
    """One recorded connectivity transition."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: int
    reason: str
    from_state: str | None = None
    to_state: str | None = None


class Subscription:
    """Registration token returned by :meth:`StateChannel.subscribe`.

    Calling the token (or :meth:`unsubscribe`) removes the callback.
    Removing twice is a no-op.
    """

    __slots__ = ("_channel", "_token")

    def __init__(self, channel: StateChannel[Any], token: int) -> None:
        self._channel = channel
        self._token = token

    @property
    def active(self) -> bool:
        return self._channel._has(self._token)

    def unsubscribe(self) -> None:
        self._channel._remove(self._token)

    def __call__(self) -> None:
        self.unsubscribe()


class StateChannel(Generic[T]):
    """Ordered, synchronous publish/subscribe channel."""

    def __init__(self) -> None:
        self._subscribers: dict[int, Callable[[T], None]] = {}
        self._tokens = itertools.count(1)

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        token = next(self._tokens)
        self._subscribers[token] = callback
        _logger.debug("Subscribed token=%d: %s", token, getattr(callback, "__name__", repr(callback)))
        return Subscription(self, token)

    def publish(self, message: T) -> None:
        # Snapshot the registry: (un)subscribing during fan-out affects the next publish only.
        for token, callback in list(self._subscribers.items()):
            try:
                callback(message)
            except Exception:
                _logger.exception(
                    "Error in state subscriber token=%d: %s",
                    token,
                    getattr(callback, "__name__", repr(callback)),
                )

    def _has(self, token: int) -> bool:
        return token in self._subscribers

    def _remove(self, token: int) -> None:
        self._subscribers.pop(token, None)
