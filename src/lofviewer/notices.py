"""Brief, self-clearing notices surfaced after user actions."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from lofviewer._constants import NOTICE_ERROR_TTL_MS, NOTICE_SUCCESS_TTL_MS
from lofviewer.models.notice import Notice, NoticeKind
from lofviewer.state.events import UpdateReason
from lofviewer.state.store import StateMachine

_logger = logging.getLogger(__name__)


class NoticeBoard:
    """Posts one notice at a time into the snapshot and clears it later.

    Errors stay up for 8 s, success and info notices for 5 s. Without a
    running event loop the notice stays until dismissed.
    """

    def __init__(self, machine: StateMachine) -> None:
        self._machine = machine
        self._clear_handle: asyncio.TimerHandle | None = None

    def post(
        self,
        kind: NoticeKind,
        code: str | None = None,
        message: str = "",
        *,
        ttl_ms: int | None = None,
        **context: Any,
    ) -> Notice:
        if ttl_ms is None:
            ttl_ms = NOTICE_ERROR_TTL_MS if kind == NoticeKind.ERROR else NOTICE_SUCCESS_TTL_MS
        now = self._machine.now()
        notice = Notice(
            kind=kind,
            code=code,
            message=message,
            context=context,
            created_at=now,
            expires_at=now + ttl_ms,
        )
        self._cancel_pending()
        self._machine.set_state({"notice": notice}, UpdateReason.NOTICE)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("No running loop; notice %s will not auto-clear", code)
            return notice
        self._clear_handle = loop.call_later(ttl_ms / 1000, self.dismiss)
        return notice

    def success(self, code: str | None = None, message: str = "", **context: Any) -> Notice:
        return self.post(NoticeKind.SUCCESS, code, message, **context)

    def error(self, code: str | None = None, message: str = "", **context: Any) -> Notice:
        return self.post(NoticeKind.ERROR, code, message, **context)

    def info(self, code: str | None = None, message: str = "", **context: Any) -> Notice:
        return self.post(NoticeKind.INFO, code, message, **context)

    def dismiss(self) -> None:
        self._cancel_pending()
        if self._machine.get_state().notice is not None:
            self._machine.set_state({"notice": None}, UpdateReason.NOTICE_CLEARED)

    def _cancel_pending(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None
