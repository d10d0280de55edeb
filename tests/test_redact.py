from __future__ import annotations

from signalstore._redact import redact_for_log
from signalstore.freeze import deep_freeze


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "user": "alice",
        "accessToken": "ABCDEF",
        "auth": {"refresh_token": "R", "api-key": "K"},
        "password": "pw",
        "nested": [{"session_id": "deadbeef"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["user"] == "alice"
    assert redacted["accessToken"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["auth"] == {"refresh_token": "<redacted>", "api-key": "<redacted>"}
    assert redacted["nested"][0]["session_id"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_renders_frozen_snapshots_as_plain_containers() -> None:
    node: dict[str, object] = {"items": list(range(5))}
    node["self"] = node
    snapshot = deep_freeze(node)

    redacted = redact_for_log(snapshot, max_items=3)

    assert type(redacted) is dict
    assert redacted["items"] == [0, 1, 2, "<2 more>"]
    assert redacted["self"] == "<cycle>"
    assert redact_for_log(b"\x00\x01") == "<bytes:2b>"
