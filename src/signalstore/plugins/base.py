"""Plugin protocol for :class:`~signalstore.store.StateStore`."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from signalstore.store import StateStore

ReloadFn = Callable[[], Awaitable[None]]


class StorePlugin:
    """Base class for store plugins.

    Plugins are applied in registration order. ``setup`` runs first for every
    plugin, then ``wrap_reload``/``wrap_force_reload`` decorate the store's
    load paths, so the last registered plugin is the outermost decorator.
    Plugins observe state and status and may trigger reloads; they never
    write to the status machine directly.
    """

    name: str = "Plugin"

    def setup(self, store: StateStore) -> None:
        """Called once while the store is constructed."""

    def wrap_reload(self, store: StateStore, reload: ReloadFn) -> ReloadFn:
        return reload

    def wrap_force_reload(self, store: StateStore, force_reload: ReloadFn) -> ReloadFn:
        return force_reload

    def pause(self) -> None:
        """Stop background work until :meth:`resume`."""

    def resume(self) -> None:
        """Restart background work stopped by :meth:`pause`."""

    def destroy(self) -> None:
        """Release every resource held for the store."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
