"""Tests for pydantic model parsing with LofBaseModel + LofEnum."""

from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from lofviewer.models import (
    ActionResult,
    ControllerStatus,
    ResultEnvelope,
    ShowDetails,
    ShowStatus,
    Song,
    SongRequestPayload,
    SpeakerConfig,
    to_epoch_ms,
)

# ------------------------------------------------------------------
# LofEnum
# ------------------------------------------------------------------


class TestLofEnum:
    def test_unknown_value_falls_back(self) -> None:
        assert ShowStatus("intermission") == ShowStatus.UNKNOWN

    def test_case_insensitive_match(self) -> None:
        assert ShowStatus(" Active ") == ShowStatus.ACTIVE


# ------------------------------------------------------------------
# LofBaseModel
# ------------------------------------------------------------------


class TestLofBaseModel:
    def test_sentinels_fall_back_to_defaults(self) -> None:
        song = Song.model_validate({"songId": "carol", "title": "", "category": None, "duration": math.nan})
        assert song.title == "Untitled"
        assert song.category == "general"
        assert song.duration == 0

    def test_snake_case_aliases(self) -> None:
        details = ShowDetails.model_validate({"available_songs": [{"songId": "a"}], "show_status": "ended"})
        assert details.show_status == ShowStatus.ENDED
        assert details.find_song("a") is not None

    def test_models_are_frozen(self) -> None:
        song = Song(song_id="carol")
        with pytest.raises(ValidationError):
            song.title = "Other"  # type: ignore[misc]

    def test_unknown_keys_ignored(self) -> None:
        status = ControllerStatus.model_validate({"fppMode": "PLAYING", "somethingNew": 1})
        assert status.is_playing


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 0),
        (0, 0),
        ("garbage", 0),
        (1_700_000_000, 1_700_000_000_000),
        (1_700_000_000_123, 1_700_000_000_123),
        ("1700000000", 1_700_000_000_000),
    ],
)
def test_to_epoch_ms(value: object, expected: int) -> None:
    assert to_epoch_ms(value) == expected


def test_curfew_respects_enabled_and_override() -> None:
    assert SpeakerConfig().curfew_active(22)
    assert not SpeakerConfig().curfew_active(21)
    assert not SpeakerConfig(noise_curfew_enabled=False).curfew_active(23)
    assert not SpeakerConfig(noise_curfew_override=True).curfew_active(23)


def test_request_payload_uses_camel_case_and_skips_missing_visitor() -> None:
    assert SongRequestPayload(song_id="carol").to_payload() == {"songId": "carol"}


def test_envelope_helpers() -> None:
    ok = ResultEnvelope.ok({"x": 1}, timestamp=1_000)
    failed = ResultEnvelope.fail("HTTP_ERROR", "HTTP 500", timestamp=1_000)

    assert ok.success and ok.error_code is None
    assert not failed.success and failed.error_code == "HTTP_ERROR"
    assert failed.age_ms(61_001) == 60_001


def test_action_result_helpers() -> None:
    result = ActionResult.failed("COOLDOWN", remaining_seconds=3)
    assert not result.success
    assert result.context == {"remaining_seconds": 3}
    assert ActionResult.succeeded("data").data == "data"
