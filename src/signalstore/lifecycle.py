"""Teardown scopes.

A :class:`DestroyScope` stands for whatever owns a group of stores (the
application, a screen, a component). Destroying it runs every registered
teardown once, most recent first.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

_logger = logging.getLogger(__name__)


class DestroyScope:
    def __init__(self, name: str = "scope") -> None:
        self.name = name
        self._callbacks: list[Callable[[], None]] = []
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def on_destroy(self, callback: Callable[[], None]) -> None:
        if self._destroyed:
            # Late registration on a dead scope: tear down right away.
            callback()
            return
        self._callbacks.append(callback)

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        _logger.debug("Destroying scope %s (%d teardowns)", self.name, len(self._callbacks))
        callbacks, self._callbacks = self._callbacks, []
        for callback in reversed(callbacks):
            callback()

    def __enter__(self) -> DestroyScope:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.destroy()
