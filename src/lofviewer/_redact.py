"""Masking for DEBUG log payloads.

Visitor identifiers tie log lines to a person's device and stream URLs
may carry access tokens, so both are masked. Long strings are cut short.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MASKED_KEYS: frozenset[str] = frozenset(
    {"visitorid", "visitor_id", "authorization", "cookie", "token", "streamurl", "stream_url"}
)
_MAX_DEPTH = 20


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of a JSON-like *value* that is safe to log."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, Mapping):
        return {
            str(key): "<redacted>"
            if str(key).lower() in _MASKED_KEYS
            else redact_for_log(item, max_string=max_string, _depth=_depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    if value is None or isinstance(value, (bool, int, float)):
        return value
    # Enums, dataclasses and the like: log their repr, not their internals.
    return repr(value)
