"""Skip reloads while the last successful fetch is still fresh."""

from __future__ import annotations

from typing import TYPE_CHECKING

from signalstore.exceptions import StoreConfigError
from signalstore.plugins.base import ReloadFn, StorePlugin
from signalstore.status import StoreStatus

if TYPE_CHECKING:
    from signalstore.store import StateStore


class LazyCachePlugin(StorePlugin):
    """Make ``reload()`` a no-op for *window* seconds after a successful load.

    Only applies while the store is resolved; ``force_reload()`` is never
    suppressed.
    """

    name = "LazyCache"

    def __init__(self, window: float) -> None:
        if window < 0:
            raise StoreConfigError(f"Lazy cache window must be >= 0, got {window}")
        self.window = float(window)

    def setup(self, store: StateStore) -> None:
        store.logger.debug("[%s] plugin initialized with cache window: %.3fs", self.name, self.window)

    def wrap_reload(self, store: StateStore, reload: ReloadFn) -> ReloadFn:
        async def cached_reload() -> None:
            last_fetch = store.last_fetch_at
            if last_fetch is None:
                store.logger.debug("[%s] No last fetch timestamp available, proceeding with reload", self.name)
                await reload()
                return

            elapsed = store.clock() - last_fetch
            store.logger.debug("[%s] Cache check: elapsed=%.3fs, window=%.3fs", self.name, elapsed, self.window)
            if elapsed < self.window and store.status.peek() == StoreStatus.RESOLVED:
                store.logger.info("[%s] Cache not expired, skipping reload", self.name)
                return
            await reload()

        return cached_reload

    def __repr__(self) -> str:
        return f"LazyCachePlugin(window={self.window})"


def with_lazy_cache(window: float) -> LazyCachePlugin:
    return LazyCachePlugin(window)
