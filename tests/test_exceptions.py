from __future__ import annotations

import logging

import pytest

from signalstore.exceptions import StoreError, StoreOperationError, wrap_error


class HttpError(Exception):
    def __init__(self, status: int, token: str) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status
        self.token = token
        self._private = "hidden"


def test_wrap_error_copies_public_attributes() -> None:
    original = HttpError(503, "secret")

    wrapped = wrap_error(original, store_name="users", action="save")

    assert isinstance(wrapped, StoreError)
    assert wrapped.message == "HTTP 503"
    assert wrapped.name == "HttpError"
    assert wrapped.store_name == "users"
    assert wrapped.action == "save"
    assert wrapped.original_error is original
    assert wrapped.details == {"status": 503, "token": "secret"}


def test_wrap_error_keeps_existing_wrapped_errors() -> None:
    wrapped = StoreOperationError("already", store_name="users")

    assert wrap_error(wrapped, store_name="other") is wrapped


def test_wrap_error_accepts_non_exception_values() -> None:
    wrapped = wrap_error("plain failure", store_name="users")

    assert wrapped.message == "plain failure"
    assert wrapped.name == "Error"
    assert wrapped.original_error is None


def test_wrap_error_logs_redacted_details(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger="signalstore.exceptions")

    wrap_error(HttpError(500, "secret"), store_name="users")

    assert "[users] Wrapped error" in caplog.text
    assert "secret" not in caplog.text
    assert "<redacted>" in caplog.text


def test_empty_message_falls_back_to_type_name() -> None:
    assert wrap_error(KeyError(), store_name="s").message == "KeyError"
