"""Client configuration for lofviewer."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from lofviewer._constants import POLL_INTERVAL_MS


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class FeatureFlags:
    """Viewer features the site operator switched on."""

    requests_enabled: bool = True
    surprise_me_enabled: bool = True
    speaker_control_enabled: bool = True


@dataclasses.dataclass(frozen=True)
class ViewerConfig:
    """Client configuration.

    Parameters
    ----------
    show_base_url : str
        Base URL of the show-control proxy (``/show``, ``/request``,
        ``/vote``). An empty value makes the show adapter answer with
        ``CONFIG_ERROR`` envelopes.
    controller_base_url : str
        Base URL of the playback controller proxy (``/status``).
    speaker_base_url : str
        Base URL of the speaker endpoint (``/speaker``).
    poll_interval : float
        Seconds between fetch-all cycles.
    request_timeout : float
        Per-request timeout in seconds.
    session_path : str or None
        JSON file holding the visitor record. ``None`` disables
        persistence.
    debug : bool
        Log every state update at DEBUG level with its payload.
    features : FeatureFlags
        Operator feature switches.
    """

    show_base_url: str = "http://localhost/wp-json/lof-viewer/v1"
    controller_base_url: str = "http://localhost/wp-json/lof-viewer/v1/fpp"
    speaker_base_url: str = "http://localhost/wp-json/lof-viewer/v1"
    poll_interval: float = POLL_INTERVAL_MS / 1000
    request_timeout: float = 10.0
    session_path: str | None = None
    debug: bool = False
    features: FeatureFlags = dataclasses.field(default_factory=FeatureFlags)

    @classmethod
    def from_env(cls, **overrides: Any) -> ViewerConfig:
        """Create configuration from ``LOF_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        feature_kwargs: dict[str, bool] = {}
        _ENV_FEATURE_MAP = {
            "LOF_REQUESTS_ENABLED": "requests_enabled",
            "LOF_SURPRISE_ME_ENABLED": "surprise_me_enabled",
            "LOF_SPEAKER_CONTROL_ENABLED": "speaker_control_enabled",
        }
        for env_key, field_name in _ENV_FEATURE_MAP.items():
            val = env.get(env_key)
            if val is not None:
                feature_kwargs[field_name] = _env_bool(val, True)

        feature_overrides = overrides.pop("features", None)
        if isinstance(feature_overrides, dict):
            feature_kwargs.update(feature_overrides)
        elif isinstance(feature_overrides, FeatureFlags):
            feature_kwargs = dataclasses.asdict(feature_overrides)

        _ENV_CONFIG_MAP = {
            "LOF_SHOW_BASE_URL": "show_base_url",
            "LOF_CONTROLLER_BASE_URL": "controller_base_url",
            "LOF_SPEAKER_BASE_URL": "speaker_base_url",
            "LOF_SESSION_PATH": "session_path",
        }
        config_kwargs: dict[str, Any] = {"features": FeatureFlags(**feature_kwargs)}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        interval_env = env.get("LOF_POLL_INTERVAL")
        if interval_env is not None and "poll_interval" not in overrides:
            config_kwargs["poll_interval"] = float(interval_env)

        timeout_env = env.get("LOF_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        if "debug" not in overrides:
            config_kwargs["debug"] = _env_bool(env.get("LOF_DEBUG"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
