"""Client-side throttles for user actions.

Both are advisory: the upstream services enforce their own limits, these
only keep a single visitor from hammering them.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from typing import TypeVar

from lofviewer._constants import SONG_COOLDOWN_MS
from lofviewer.models._base import now_ms

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class SongCooldowns:
    """Per-song cooldown after a successful request. Not persisted."""

    def __init__(
        self,
        *,
        clock: Callable[[], int] = now_ms,
        duration_ms: int = SONG_COOLDOWN_MS,
    ) -> None:
        self._clock = clock
        self._duration_ms = duration_ms
        self._expiries: dict[str, int] = {}

    def start(self, song_id: str) -> int:
        """Start (or restart) the cooldown for *song_id*; returns its expiry."""
        expiry = self._clock() + self._duration_ms
        self._expiries[song_id] = expiry
        return expiry

    def remaining_ms(self, song_id: str) -> int:
        expiry = self._expiries.get(song_id)
        if expiry is None:
            return 0
        remaining = expiry - self._clock()
        if remaining <= 0:
            del self._expiries[song_id]
            return 0
        return remaining

    def remaining_seconds(self, song_id: str) -> int:
        return math.ceil(self.remaining_ms(song_id) / 1000)

    def is_cooling(self, song_id: str) -> bool:
        return self.remaining_ms(song_id) > 0

    def clear(self) -> None:
        self._expiries.clear()


class SingleFlight:
    """Lets exactly one user action run at a time.

    Attempts made while another action is in flight are dropped and
    return ``None``. The guard is released however the action ends.
    """

    def __init__(self) -> None:
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def run(self, action: Callable[[], Awaitable[T]]) -> T | None:
        if self._busy:
            _logger.debug("Action ignored: another action is in flight")
            return None
        self._busy = True
        try:
            return await action()
        finally:
            self._busy = False
