"""Durable visitor record (visitor id and last request)."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from lofviewer._constants import RECENT_REQUEST_TTL_MS
from lofviewer.models.session import VisitorRecord

_logger = logging.getLogger(__name__)


class SessionStore:
    """JSON file holding a :class:`VisitorRecord`.

    Read failures and write failures are logged and swallowed: losing the
    record only costs the visitor their "recent request" banner.
    """

    def __init__(self, path: str | os.PathLike[str], *, ttl_ms: int = RECENT_REQUEST_TTL_MS) -> None:
        self._path = Path(path)
        self._ttl_ms = ttl_ms

    @property
    def path(self) -> Path:
        return self._path

    def load(self, now: int) -> VisitorRecord | None:
        """Read the record; a recent request older than the TTL is dropped."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            _logger.warning("Could not read session file %s", self._path, exc_info=True)
            return None

        try:
            record = VisitorRecord.model_validate_json(text)
        except ValidationError:
            _logger.warning("Discarding unreadable session file %s", self._path)
            return None

        recent = record.recent_request
        if recent is not None and now - recent.timestamp > self._ttl_ms:
            record = record.model_copy(update={"recent_request": None})
        return record

    def save(self, record: VisitorRecord) -> bool:
        payload = record.model_dump_json(by_alias=True)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".lof_session.")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError:
            _logger.warning("Could not write session file %s", self._path, exc_info=True)
            return False
        return True
