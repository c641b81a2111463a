from __future__ import annotations

from lofviewer._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "songId": "carol",
        "visitorId": "visitor_1_abc123",
        "visitor": {"visitor_id": "visitor_1_abc123", "interaction_count": 2},
        "config": {"streamUrl": "https://stream.example/secret"},
    }

    redacted = redact_for_log(payload)
    assert redacted["songId"] == "carol"
    assert redacted["visitorId"] == "<redacted>"
    assert redacted["visitor"]["visitor_id"] == "<redacted>"
    assert redacted["visitor"]["interaction_count"] == 2
    assert redacted["config"]["streamUrl"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_walks_lists_and_keeps_scalars() -> None:
    redacted = redact_for_log({"queue": [{"visitor_id": "v1", "position": 1}], "enabled": True, "ratio": 0.5})
    assert redacted == {"queue": [{"visitor_id": "<redacted>", "position": 1}], "enabled": True, "ratio": 0.5}


def test_redact_for_log_reprs_unknown_objects() -> None:
    assert redact_for_log({"when": {1, 2}})["when"] == repr({1, 2})
