"""Base model and enum for upstream payloads.

Every wire model inherits from :class:`LofBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase payload keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips sentinel values
  (``None``, ``""``, NaN) so the field default is used, and applies
  per-model ``_KEY_ALIASES`` for snake_case keys some proxies emit.
* ``frozen=True`` so snapshots handed to subscribers cannot be mutated.

Status enums inherit from :class:`LofEnum` which resolves any value
without a mapped member to ``UNKNOWN`` instead of raising.
"""

from __future__ import annotations

import math
import time
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def to_epoch_ms(value: Any) -> int:
    """Convert an epoch timestamp (seconds **or** milliseconds) to epoch ms.

    ``None``, ``0`` and non-numeric values become ``0`` ("never").
    """
    if value is None:
        return 0
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    try:
        ts = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(ts) or ts <= 0:
        return 0
    if ts < _MS_THRESHOLD:
        ts *= 1000
    return int(ts)


EpochMs = Annotated[int, BeforeValidator(to_epoch_ms)]
"""Annotated type that coerces epoch seconds or ms to epoch ms."""


class LofEnum(StrEnum):
    """Base for upstream status enums.

    Every subclass **must** define ``UNKNOWN = "unknown"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> LofEnum:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        unknown: LofEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class LofBaseModel(BaseModel):
    """Base for upstream payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any], aliases: dict[str, str] | None = None) -> dict[str, Any]:
        """Strip sentinel values and apply key aliases on *values*."""
        working = dict(values)
        if aliases:
            for old_key, new_key in aliases.items():
                if old_key in working and new_key not in working:
                    working[new_key] = working.pop(old_key)

        cleaned: dict[str, Any] = {}
        for key, value in working.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        aliases: dict[str, str] = getattr(cls, "_KEY_ALIASES", {})
        return LofBaseModel._clean_dict(values, aliases)
