"""Navigation lifecycle events.

A navigation source tells stores when the active screen changes. Stores
created by a factory pause their TTL while a transition is in progress and
only resume it when the user is back on the URL the store was created on.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

_logger = logging.getLogger(__name__)


class TransitionStart(BaseModel):
    """A navigation has started."""

    model_config = ConfigDict(frozen=True)

    url: str | None = None


class TransitionEnd(BaseModel):
    """A navigation completed; *url* is now active."""

    model_config = ConfigDict(frozen=True)

    url: str


NavigationEvent = TransitionStart | TransitionEnd
NavigationListener = Callable[[NavigationEvent], None]


@runtime_checkable
class NavigationSource(Protocol):
    @property
    def url(self) -> str:
        """The currently active URL."""
        ...

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        """Register *listener*; returns an unsubscribe function."""
        ...


class Navigator:
    """In-process navigation source."""

    def __init__(self, url: str = "/") -> None:
        self._url = url
        self._listeners: list[NavigationListener] = []

    @property
    def url(self) -> str:
        return self._url

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: NavigationEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def start_transition(self, url: str | None = None) -> None:
        _logger.debug("Navigation started (target=%s)", url)
        self._emit(TransitionStart(url=url))

    def end_transition(self, url: str) -> None:
        _logger.debug("Navigation ended at %s", url)
        self._url = url
        self._emit(TransitionEnd(url=url))

    def navigate(self, url: str) -> None:
        """Emit a full start/end transition to *url*."""
        self.start_transition(url)
        self.end_transition(url)
