"""Out-of-band reporting of store errors."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from signalstore.exceptions import StoreOperationError
from signalstore.plugins.base import StorePlugin
from signalstore.signals import Effect, untracked
from signalstore.status import StoreStatus

if TYPE_CHECKING:
    from signalstore.store import StateStore

ErrorCallback = Callable[[StoreOperationError, "StateStore"], None]


class ErrorHandlerPlugin(StorePlugin):
    """Call *callback* once per error each time the store enters ``error``.

    Meant for reporting (toasts, telemetry); it must not be used to retry.
    """

    name = "ErrorHandler"

    def __init__(self, callback: ErrorCallback) -> None:
        self.callback = callback
        self._effect: Effect | None = None
        self._last_reported: StoreOperationError | None = None

    def setup(self, store: StateStore) -> None:
        store.logger.debug("[%s] plugin initialized", self.name)

        def watch() -> None:
            error = store.error()
            status = store.status()
            if status != StoreStatus.ERROR or error is None:
                self._last_reported = None
                return
            if error is self._last_reported:
                return
            self._last_reported = error
            store.logger.debug("[%s] Store error detected: %s", self.name, error.message)
            untracked(lambda: self.callback(error, store))

        self._effect = store.effect(watch)

    def destroy(self) -> None:
        if self._effect is not None:
            self._effect.destroy()
            self._effect = None


def with_error_handler(callback: ErrorCallback) -> ErrorHandlerPlugin:
    return ErrorHandlerPlugin(callback)
