"""Periodic reloads on a fixed cadence."""

from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING

from signalstore.plugins.base import StorePlugin

if TYPE_CHECKING:
    from signalstore.store import StateStore


class AutoRefreshPlugin(StorePlugin):
    """Trigger ``reload()`` every *interval* seconds.

    Ticks are anchored to the time the refresher started (``start + n *
    interval``), not to when loads resolve, and a tick never waits for the
    reload it fired. This is independent of the store TTL. ``interval <= 0``
    disables the plugin.
    """

    name = "AutoRefresh"

    def __init__(self, interval: float) -> None:
        self.interval = float(interval)
        self._store: StateStore | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def setup(self, store: StateStore) -> None:
        self._store = store
        if self.interval <= 0:
            store.logger.debug("[%s] Auto refresh is disabled (interval <= 0)", self.name)
            return
        store.logger.debug("[%s] plugin initialized with interval: %.3fs", self.name, self.interval)
        self._start()

    def _start(self) -> None:
        if self._store is None or self.running:
            return
        self._task = self._store.spawn(self._run())

    async def _run(self) -> None:
        store = self._store
        assert store is not None  # noqa: S101
        loop = asyncio.get_running_loop()
        started = loop.time()
        while True:
            ticks = math.floor((loop.time() - started) / self.interval) + 1
            await asyncio.sleep(started + ticks * self.interval - loop.time())
            if store.destroyed:
                return
            store.logger.info("[%s] Auto refresh interval reached, reloading data", self.name)
            store.spawn(store.reload())

    def _stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def pause(self) -> None:
        if self._store is not None:
            self._store.logger.debug("[%s] Auto refresh paused", self.name)
        self._stop()

    def resume(self) -> None:
        if self._store is None or self._store.destroyed or self.interval <= 0:
            return
        self._store.logger.debug("[%s] Auto refresh resumed", self.name)
        self._start()

    def destroy(self) -> None:
        self._stop()
        self._store = None

    def __repr__(self) -> str:
        return f"AutoRefreshPlugin(interval={self.interval})"


def with_auto_refresh(interval: float) -> AutoRefreshPlugin:
    return AutoRefreshPlugin(interval)
