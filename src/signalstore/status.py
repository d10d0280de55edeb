"""Store lifecycle status."""

from __future__ import annotations

from enum import StrEnum


class StoreStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    RESOLVED = "resolved"
    ERROR = "error"
