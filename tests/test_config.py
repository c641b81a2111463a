from __future__ import annotations

import dataclasses

import pytest

from lofviewer.config import FeatureFlags, ViewerConfig


def test_defaults() -> None:
    config = ViewerConfig()
    assert config.poll_interval == 15.0
    assert config.session_path is None
    assert config.features == FeatureFlags()


def test_from_env_reads_lof_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOF_SHOW_BASE_URL", "https://show.example/api")
    monkeypatch.setenv("LOF_POLL_INTERVAL", "5")
    monkeypatch.setenv("LOF_DEBUG", "yes")
    monkeypatch.setenv("LOF_REQUESTS_ENABLED", "0")
    monkeypatch.setenv("LOF_SESSION_PATH", "/tmp/lof.json")

    config = ViewerConfig.from_env()

    assert config.show_base_url == "https://show.example/api"
    assert config.poll_interval == 5.0
    assert config.debug
    assert config.session_path == "/tmp/lof.json"
    assert not config.features.requests_enabled
    assert config.features.surprise_me_enabled


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOF_POLL_INTERVAL", "5")
    monkeypatch.setenv("LOF_DEBUG", "1")

    config = ViewerConfig.from_env(poll_interval=30.0, debug=False, features={"speaker_control_enabled": False})

    assert config.poll_interval == 30.0
    assert not config.debug
    assert not config.features.speaker_control_enabled


def test_config_is_frozen() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        ViewerConfig().debug = True  # type: ignore[misc]
