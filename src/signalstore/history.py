"""Process-wide audit trail of store transitions.

Every tracked transition (main load status and named action statuses) can
be appended here. The recorder outlives individual stores and is
append-only; queries return copies.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from signalstore._redact import redact_for_log
from signalstore.config import get_settings
from signalstore.freeze import deep_freeze
from signalstore.status import StoreStatus

_logger = logging.getLogger(__name__)


class HistoryEvent(BaseModel):
    """One recorded transition."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    store_scope: str
    action: str
    params: Any = Field(default_factory=dict)
    status: StoreStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class StoreHistory:
    """Append-only recorder for :class:`HistoryEvent` records."""

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled
        self._events: list[HistoryEvent] = []
        if enabled:
            _logger.debug("Store history initialized with tracking enabled")

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def track_event(
        self,
        *,
        store_scope: str,
        action: str,
        status: StoreStatus,
        params: Any = None,
    ) -> HistoryEvent | None:
        """Append an event; returns ``None`` when tracking is disabled."""
        if not self._enabled:
            return None
        event = HistoryEvent(
            store_scope=store_scope,
            action=action,
            params=deep_freeze(params if params is not None else {}),
            status=status,
        )
        self._events.append(event)
        _logger.debug("Event tracked: %s", redact_for_log(event.model_dump()))
        return event

    def get_all_events(self) -> list[HistoryEvent]:
        return list(self._events)

    def get_events_by_store(self, store_scope: str) -> list[HistoryEvent]:
        return [event for event in self._events if event.store_scope == store_scope]

    def clear_history(self) -> None:
        self._events.clear()
        _logger.debug("History cleared")

    def __len__(self) -> int:
        return len(self._events)


_default_history: StoreHistory | None = None


def get_store_history() -> StoreHistory:
    """Return the shared recorder, creating it from settings on first use."""
    global _default_history
    if _default_history is None:
        _default_history = StoreHistory(enabled=get_settings().history_enabled)
    return _default_history


def set_store_history(history: StoreHistory | None) -> None:
    """Replace (or with ``None``, reset) the shared recorder."""
    global _default_history
    _default_history = history
