"""Persist resolved state to a key/value storage backend."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING

from signalstore.freeze import thaw
from signalstore.plugins.base import StorePlugin
from signalstore.status import StoreStatus
from signalstore.storage import StorageBackend

if TYPE_CHECKING:
    from signalstore.store import StateStore


class PersistencePlugin(StorePlugin):
    """Hydrate state from *backend* at setup and save it on every resolve.

    Only the state snapshot is stored, never status or error. Storage and
    JSON failures are logged and otherwise ignored: persistence is best
    effort.
    """

    name = "Persistence"

    def __init__(self, backend: StorageBackend, key: str | None = None) -> None:
        self.backend = backend
        self._key = key
        self._storage_key: str | None = None
        self._store: StateStore | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def storage_key(self) -> str | None:
        return self._storage_key

    def setup(self, store: StateStore) -> None:
        self._store = store
        self._storage_key = f"{store.settings.storage_prefix}{self._key or store.scope_name}"
        store.logger.debug("[%s] Persistence enabled for key: %s", self.name, self._storage_key)
        self._hydrate(store)
        self._unsubscribe = store.status.subscribe(self._on_status)

    def _hydrate(self, store: StateStore) -> None:
        assert self._storage_key is not None  # noqa: S101
        try:
            blob = self.backend.get(self._storage_key)
        except (OSError, ValueError) as err:
            store.logger.error("[%s] Failed to read persisted state: %s", self.name, err)
            return
        if not blob:
            return
        try:
            data = json.loads(blob)
        except ValueError as err:
            store.logger.error("[%s] Failed to decode persisted state: %s", self.name, err)
            return
        if not isinstance(data, dict):
            store.logger.warning("[%s] Ignoring persisted state of type %s", self.name, type(data).__name__)
            return
        store.logger.debug("[%s] Hydrating state from storage", self.name)
        store.update_state(data)

    def _on_status(self, status: StoreStatus) -> None:
        if status == StoreStatus.RESOLVED:
            self.persist()

    def persist(self) -> None:
        """Write the current snapshot to the backend."""
        store = self._store
        if store is None or self._storage_key is None:
            return
        try:
            blob = json.dumps(thaw(store.state.peek()), default=str)
            self.backend.set(self._storage_key, blob)
        except (OSError, TypeError, ValueError) as err:
            store.logger.error("[%s] Failed to persist state: %s", self.name, err)

    def destroy(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._store = None

    def __repr__(self) -> str:
        return f"PersistencePlugin(backend={self.backend!r}, key={self._key!r})"


def with_persistence(backend: StorageBackend, key: str | None = None) -> PersistencePlugin:
    return PersistencePlugin(backend, key)
