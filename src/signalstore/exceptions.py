"""Custom exception hierarchy for signalstore."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from signalstore._redact import redact_for_log

_logger = logging.getLogger(__name__)

# Attributes every exception carries; never copied into ``details``.
_STANDARD_ATTRS = frozenset({"args", "message", "name", "with_traceback", "add_note", "__notes__"})


class StoreError(Exception):
    """Base exception for all signalstore errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class StoreConfigError(StoreError):
    """Invalid or missing store configuration.

    These are programmer errors and are raised while building or
    constructing a store, never deferred until the first load.
    """


class StoreOperationError(StoreError):
    """Normalized failure of a load or a tracked action.

    This is the object published on a store's error slot. The original
    raised value is kept in ``original_error``; public attributes of the
    original are copied into ``details`` for display.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str = "Error",
        store_name: str = "",
        action: str | None = None,
        original_error: BaseException | None = None,
        details: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> None:
        self.name = name
        self.store_name = store_name
        self.action = action
        self.original_error = original_error
        self.details: dict[str, Any] = dict(details or {})
        self.timestamp = timestamp or datetime.now(UTC)
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"StoreOperationError(store={self.store_name!r}, action={self.action!r}, "
            f"name={self.name!r}, message={self.message!r})"
        )


def _extract_details(error: BaseException) -> dict[str, Any]:
    details: dict[str, Any] = {}
    for key, value in vars(error).items():
        if key.startswith("_") or key in _STANDARD_ATTRS:
            continue
        if value is None or callable(value):
            continue
        details[key] = value
    return details


def wrap_error(value: Any, *, store_name: str, action: str | None = None) -> StoreOperationError:
    """Normalize any raised value into a :class:`StoreOperationError`.

    An existing ``StoreOperationError`` is returned unchanged so re-raised
    errors are not wrapped twice.
    """
    if isinstance(value, StoreOperationError):
        return value

    if isinstance(value, BaseException):
        message = str(value) or type(value).__name__
        wrapped = StoreOperationError(
            message,
            name=type(value).__name__,
            store_name=store_name,
            action=action,
            original_error=value,
            details=_extract_details(value),
        )
    else:
        wrapped = StoreOperationError(str(value), store_name=store_name, action=action)

    log_info: dict[str, Any] = {
        "name": wrapped.name,
        "message": wrapped.message,
        "store_name": wrapped.store_name,
        "timestamp": wrapped.timestamp.isoformat(),
    }
    if action is not None:
        log_info["action"] = action
    if wrapped.details:
        log_info["details"] = redact_for_log(wrapped.details)
    _logger.error("[%s] Wrapped error: %s", store_name, log_info)
    return wrapped
