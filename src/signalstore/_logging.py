"""Scoped diagnostic channel for stores.

Every store logs through ``signalstore.store`` with its scope name attached,
so output can be restricted to a few stores without touching the others.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

from signalstore.config import StoreSettings

STORE_LOGGER_NAME = "signalstore.store"


class ScopedLogger(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Logger adapter that prefixes messages with ``[scope]``."""

    def __init__(self, logger: logging.Logger, scope: str) -> None:
        super().__init__(logger, {"scope": scope})
        self.scope = scope

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("scope", self.scope)
        kwargs["extra"] = extra
        return f"[{self.scope}] {msg}", kwargs


class ScopeFilter(logging.Filter):
    """Drop scoped records whose scope is not in *allowed*.

    Records without a scope always pass.
    """

    def __init__(self, allowed: tuple[str, ...] | list[str]) -> None:
        super().__init__()
        self.allowed = frozenset(allowed)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.allowed:
            return True
        scope = getattr(record, "scope", None)
        return scope is None or scope in self.allowed


def scoped_logger(scope: str) -> ScopedLogger:
    return ScopedLogger(logging.getLogger(STORE_LOGGER_NAME), scope)


def configure_logging(settings: StoreSettings) -> None:
    """Apply *settings* to the package loggers.

    Sets the ``signalstore`` level and (re)installs the scope filter on the
    store channel.
    """
    package_logger = logging.getLogger("signalstore")
    package_logger.setLevel(settings.log_level.upper())

    store_logger = logging.getLogger(STORE_LOGGER_NAME)
    for existing in [f for f in store_logger.filters if isinstance(f, ScopeFilter)]:
        store_logger.removeFilter(existing)
    if settings.restricted_scopes:
        store_logger.addFilter(ScopeFilter(settings.restricted_scopes))
