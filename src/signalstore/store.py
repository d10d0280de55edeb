"""Reactive state store runtime.

A :class:`StateStore` owns one frozen state snapshot, a status/error machine,
a TTL reload timer and a map of per-action statuses. Everything observable
is exposed as a :class:`~signalstore.signals.Computed` so UI code can read
it directly or from inside an effect.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
import time
from collections.abc import Awaitable, Callable, Coroutine, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from signalstore._logging import scoped_logger
from signalstore._redact import redact_for_log
from signalstore.config import StoreSettings, get_settings
from signalstore.exceptions import StoreConfigError, StoreOperationError, wrap_error
from signalstore.freeze import FrozenDict, deep_freeze, merge_state
from signalstore.history import StoreHistory, get_store_history
from signalstore.plugins.base import ReloadFn, StorePlugin
from signalstore.signals import Computed, Effect, Signal
from signalstore.status import StoreStatus

Loader = Callable[[], Awaitable[Mapping[str, Any] | None]]


def _observed(status: Signal[StoreStatus], error: Signal[StoreOperationError | None]) -> StoreStatus:
    return StoreStatus.ERROR if error.get() is not None else status.get()


@dataclass(slots=True)
class _ActionEntry:
    status: Signal[StoreStatus]
    error: Signal[StoreOperationError | None]
    unsubscribe: Callable[[], None]
    params: Any = None


class StoreNamespace:
    """Attribute-style registry for a store's actions or selectors."""

    def __init__(self, kind: str, scope_name: str) -> None:
        self._kind = kind
        self._scope_name = scope_name
        self._items: dict[str, Any] = {}

    def register(self, name: str, value: Any) -> None:
        if name in self._items:
            raise StoreConfigError(f"{self._kind} '{name}' is already registered on store '{self._scope_name}'")
        self._items[name] = value

    def __getattr__(self, name: str) -> Any:
        items = self.__dict__.get("_items", {})
        try:
            return items[name]
        except KeyError:
            raise AttributeError(f"store '{self._scope_name}' has no {self._kind} '{name}'") from None

    def __getitem__(self, name: str) -> Any:
        return self._items[name]

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"<{self._kind}s of {self._scope_name}: {', '.join(self._items)}>"


class StateStore:
    """A single managed unit of asynchronously loaded state.

    Usage::

        async def load() -> dict[str, Any]:
            return {"count": await api.count()}

        store = StateStore(load, scope_name="counter", initial_state={"count": 0}, ttl=60)
        await store.reload()
        store.state()["count"]

    Parameters
    ----------
    loader : callable
        Async callable with no arguments returning a partial state mapping.
        Dependencies must already be bound (see :mod:`signalstore.builder`).
    scope_name : str
        Store identity used in logs and history. Defaults to the class name.
    initial_state : mapping
        Snapshot published before the first load.
    ttl : float
        Seconds after a successful load before an automatic reload.
        ``None`` uses ``settings.default_ttl``; ``0`` disables TTL.
    plugins : sequence of StorePlugin
        Applied in order; see :class:`~signalstore.plugins.base.StorePlugin`.
    history : StoreHistory
        Recorder for status transitions; defaults to the shared recorder.
    clock : callable
        Monotonic clock in seconds, used for fetch timestamps.
    settings : StoreSettings
        Defaults to the process-wide settings.
    """

    def __init__(
        self,
        loader: Loader,
        *,
        scope_name: str | None = None,
        initial_state: Mapping[str, Any] | None = None,
        ttl: float | None = None,
        plugins: Sequence[StorePlugin] = (),
        history: StoreHistory | None = None,
        clock: Callable[[], float] = time.monotonic,
        settings: StoreSettings | None = None,
    ) -> None:
        self.scope_name = scope_name or type(self).__name__
        if loader is None or not callable(loader):
            raise StoreConfigError(f"Store '{self.scope_name}' requires a loader function")
        if initial_state is not None and not isinstance(initial_state, Mapping):
            raise StoreConfigError(f"Store '{self.scope_name}' initial state must be a mapping")
        self._settings = settings or get_settings()
        resolved_ttl = self._settings.default_ttl if ttl is None else ttl
        if resolved_ttl < 0:
            raise StoreConfigError(f"Store '{self.scope_name}' TTL must be >= 0, got {resolved_ttl}")

        self._logger = scoped_logger(self.scope_name)
        self._loader = loader
        self._ttl = float(resolved_ttl)
        self._clock = clock
        self._history = history if history is not None else get_store_history()

        self._state_signal: Signal[FrozenDict] = Signal(
            deep_freeze(dict(initial_state or {})), f"{self.scope_name}.state"
        )
        self._status_signal: Signal[StoreStatus] = Signal(StoreStatus.IDLE, f"{self.scope_name}.status")
        self._error_signal: Signal[StoreOperationError | None] = Signal(None, f"{self.scope_name}.error")

        self.state: Computed[FrozenDict] = Computed(self._state_signal.get)
        self.status: Computed[StoreStatus] = Computed(lambda: _observed(self._status_signal, self._error_signal))
        self.error: Computed[StoreOperationError | None] = Computed(self._error_signal.get)
        self.is_loading: Computed[bool] = Computed(lambda: self.status() == StoreStatus.LOADING)
        self.is_resolved: Computed[bool] = Computed(lambda: self.status() == StoreStatus.RESOLVED)
        self.is_error: Computed[bool] = Computed(lambda: self.status() == StoreStatus.ERROR)
        self.is_idle: Computed[bool] = Computed(lambda: self.status() == StoreStatus.IDLE)
        self.is_loaded: Computed[bool] = Computed(
            lambda: self.status() in (StoreStatus.RESOLVED, StoreStatus.IDLE)
        )
        self.error_message: Computed[str | None] = Computed(self._error_message)

        self._last_fetch_at: float | None = None
        self._ttl_handle: asyncio.TimerHandle | None = None
        self._ttl_paused = False
        self._scheduled_ttl_delay: float | None = None
        self._load_seq = 0
        self._destroyed = False

        self._tasks: set[asyncio.Task[Any]] = set()
        self._effects: list[Effect] = []
        self._subscriptions: list[Callable[[], None]] = []
        self._teardowns: list[Callable[[], None]] = []
        self._action_entries: dict[str, _ActionEntry] = {}

        self.actions = StoreNamespace("action", self.scope_name)
        self.selectors = StoreNamespace("selector", self.scope_name)
        self.actions.register("reload", self.reload)
        self.actions.register("force_reload", self.force_reload)

        self._subscriptions.append(self._state_signal.subscribe(self._on_state_changed))
        self._subscriptions.append(self._status_signal.subscribe(self._on_status_changed))

        self._plugins: tuple[StorePlugin, ...] = tuple(plugins)
        try:
            for plugin in self._plugins:
                self._logger.debug("Applying plugin %s", plugin.name)
                plugin.setup(self)
        except BaseException:
            # Plugins set up so far may already own tasks or subscriptions.
            self.destroy()
            raise

        reload_chain: ReloadFn = self._base_reload
        force_reload_chain: ReloadFn = self._base_force_reload
        for plugin in self._plugins:
            reload_chain = plugin.wrap_reload(self, reload_chain)
            force_reload_chain = plugin.wrap_force_reload(self, force_reload_chain)
        self._reload_chain = reload_chain
        self._force_reload_chain = force_reload_chain

    def __repr__(self) -> str:
        return f"<StateStore {self.scope_name} status={self._status_signal.peek()}>"

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def ttl_paused(self) -> bool:
        return self._ttl_paused

    @property
    def ttl_scheduled(self) -> bool:
        """Whether a TTL reload timer is pending."""
        return self._ttl_handle is not None

    @property
    def scheduled_ttl_delay(self) -> float | None:
        """Delay (seconds) the most recent TTL reload was scheduled with."""
        return self._scheduled_ttl_delay

    @property
    def last_fetch_at(self) -> float | None:
        """Clock reading of the last successful load."""
        return self._last_fetch_at

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    @property
    def history(self) -> StoreHistory:
        return self._history

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    @property
    def logger(self) -> logging.LoggerAdapter:  # type: ignore[type-arg]
        return self._logger

    @property
    def plugins(self) -> tuple[StorePlugin, ...]:
        return self._plugins

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # ------------------------------------------------------------------
    # State container
    # ------------------------------------------------------------------

    def update_state(self, partial: Mapping[str, Any] | BaseModel | None) -> None:
        """Merge *partial* into the top level of the current snapshot.

        Nested values are replaced, not merged. The result is deep-frozen
        and published atomically.
        """
        if isinstance(partial, BaseModel):
            partial = partial.model_dump(exclude_unset=True)
        if partial is not None and not isinstance(partial, Mapping):
            self._logger.warning("updateState ignored a non-mapping partial of type %s", type(partial).__name__)
            return
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("updateState %s", redact_for_log(partial))
        self._state_signal.set(merge_state(self._state_signal.peek(), partial))

    def initialize_state(self, value: Mapping[str, Any] | None) -> None:
        """Replace the snapshot wholesale."""
        if value is not None and not isinstance(value, Mapping):
            self._logger.warning("initializeState ignored a non-mapping value of type %s", type(value).__name__)
            return
        self._state_signal.set(deep_freeze(dict(value or {})))

    def _error_message(self) -> str | None:
        error = self.error()
        return error.message if error is not None else None

    def _on_state_changed(self, snapshot: FrozenDict) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("state updated → %s", redact_for_log(snapshot))

    def _on_status_changed(self, status: StoreStatus) -> None:
        self._logger.debug("status changed → %s", status)
        self._history.track_event(store_scope=self.scope_name, action="load", params={}, status=status)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def reload(self) -> None:
        """Load through the plugin chain. Load failures end up in ``error``."""
        await self._reload_chain()

    async def force_reload(self) -> None:
        """Load bypassing cache plugins; re-raises the wrapped load error."""
        await self._force_reload_chain()

    async def _base_reload(self) -> None:
        await self._load(raise_errors=False)

    async def _base_force_reload(self) -> None:
        await self._load(raise_errors=True)

    async def _load(self, *, raise_errors: bool) -> None:
        self._logger.info("reload()")
        self._clear_ttl_timer()
        self._load_seq += 1
        seq = self._load_seq
        self._error_signal.set(None)
        self._status_signal.set(StoreStatus.LOADING)

        try:
            result = self._loader()
            if inspect.isawaitable(result):
                result = await result
            if result is None:
                result = {}
            elif isinstance(result, BaseModel):
                result = result.model_dump(exclude_unset=True)
            elif not isinstance(result, Mapping):
                raise TypeError(f"loader returned {type(result).__name__}, expected a mapping")
        except Exception as err:
            wrapped = wrap_error(err, store_name=self.scope_name)
            if seq != self._load_seq:
                self._logger.debug("Discarding error of superseded load #%d", seq)
            else:
                self._error_signal.set(wrapped)
                self._status_signal.set(StoreStatus.ERROR)
            if raise_errors:
                raise wrapped from err
            return

        if seq != self._load_seq:
            self._logger.debug("Discarding result of superseded load #%d", seq)
            return

        self.update_state(result)
        self._last_fetch_at = self._clock()
        self._status_signal.set(StoreStatus.RESOLVED)
        self._schedule_ttl_reload()

    def clear_error(self) -> None:
        """Reset the error slot without triggering a load."""
        self._error_signal.set(None)
        if self._status_signal.peek() == StoreStatus.ERROR:
            self._status_signal.set(StoreStatus.IDLE)

    # ------------------------------------------------------------------
    # TTL
    # ------------------------------------------------------------------

    def pause_ttl(self) -> None:
        """Cancel the pending TTL timer, keeping the last fetch timestamp."""
        self._logger.debug("pausing TTL")
        self._ttl_paused = True
        self._clear_ttl_timer()

    def resume_ttl(self) -> None:
        """Reschedule the TTL reload relative to the last fetch."""
        self._logger.debug("resuming TTL")
        self._ttl_paused = False
        if self.status.peek() == StoreStatus.RESOLVED:
            self._schedule_ttl_reload()

    def _schedule_ttl_reload(self) -> None:
        if self._ttl <= 0 or self._destroyed:
            return
        if self._ttl_paused:
            self._logger.debug("TTL paused, skipping reload scheduling")
            return
        self._clear_ttl_timer()

        elapsed = self._clock() - self._last_fetch_at if self._last_fetch_at is not None else math.inf
        delay = self._ttl - elapsed
        if delay <= 0:
            self._logger.info("TTL expired, reloading immediately")
            self._scheduled_ttl_delay = 0.0
            self.spawn(self.reload())
            return

        loop = self._running_loop()
        self._logger.debug("scheduling reload in %.3fs (TTL)", delay)
        self._scheduled_ttl_delay = delay
        self._ttl_handle = loop.call_later(delay, self._on_ttl_expired)

    def _on_ttl_expired(self) -> None:
        self._ttl_handle = None
        if self._destroyed:
            return
        self._logger.info("TTL reached, reloading")
        self.spawn(self.reload())

    def _clear_ttl_timer(self) -> None:
        if self._ttl_handle is not None:
            self._ttl_handle.cancel()
            self._ttl_handle = None

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------

    def _running_loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as err:
            raise StoreConfigError(
                f"Store '{self.scope_name}' needs a running event loop to schedule background work"
            ) from err

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run *coro* as a fire-and-forget task owned by the store."""
        try:
            loop = self._running_loop()
        except StoreConfigError:
            coro.close()
            raise
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error("Background task failed: %r", exc)

    def effect(self, fn: Callable[[], Any]) -> Effect:
        """Create an effect that is destroyed together with the store."""
        ref = Effect(fn)
        self._effects.append(ref)
        return ref

    def on_destroy(self, callback: Callable[[], None]) -> None:
        self._teardowns.append(callback)

    def sleep(self) -> None:
        """Pause the background work of every plugin."""
        for plugin in self._plugins:
            plugin.pause()

    def wake_up(self) -> None:
        """Resume the background work of every plugin."""
        for plugin in self._plugins:
            plugin.resume()

    # ------------------------------------------------------------------
    # Action statuses
    # ------------------------------------------------------------------

    def get_action_status_signal(self, name: str, params: Any = None) -> Signal[StoreStatus]:
        """Return the raw status signal for *name*, creating it on first use."""
        entry = self._action_entries.get(name)
        if entry is None:
            status: Signal[StoreStatus] = Signal(StoreStatus.IDLE, f"{self.scope_name}.{name}.status")
            error: Signal[StoreOperationError | None] = Signal(None, f"{self.scope_name}.{name}.error")
            entry = _ActionEntry(status=status, error=error, unsubscribe=lambda: None, params=params)

            def on_change(value: StoreStatus, _name: str = name, _entry: _ActionEntry = entry) -> None:
                self._logger.debug("[%s] status changed → %s", _name, value)
                self._history.track_event(
                    store_scope=self.scope_name,
                    action=_name,
                    params=_entry.params if _entry.params is not None else {},
                    status=value,
                )

            entry.unsubscribe = status.subscribe(on_change)
            self._action_entries[name] = entry
        elif params is not None:
            entry.params = params
        return entry.status

    def get_action_error_signal(self, name: str) -> Signal[StoreOperationError | None]:
        self.get_action_status_signal(name)
        return self._action_entries[name].error

    def action_status(self, name: str) -> StoreStatus:
        self.get_action_status_signal(name)
        entry = self._action_entries[name]
        return _observed(entry.status, entry.error)

    def action_error(self, name: str) -> StoreOperationError | None:
        return self.get_action_error_signal(name).get()

    def is_action_loading(self, name: str) -> bool:
        return self.action_status(name) == StoreStatus.LOADING

    def is_action_resolved(self, name: str) -> bool:
        return self.action_status(name) == StoreStatus.RESOLVED

    def is_action_error(self, name: str) -> bool:
        return self.action_status(name) == StoreStatus.ERROR

    def is_action_idle(self, name: str) -> bool:
        return self.action_status(name) == StoreStatus.IDLE

    @property
    def tracked_actions(self) -> tuple[str, ...]:
        return tuple(self._action_entries)

    def clear_action_status_signal(self, name: str) -> None:
        """Stop tracking *name*; its observer is torn down immediately."""
        entry = self._action_entries.pop(name, None)
        if entry is None:
            return
        entry.unsubscribe()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Cancel timers, tear down plugins and observers. Idempotent.

        An in-flight load is not cancelled; its result is still applied.
        """
        if self._destroyed:
            return
        self._logger.debug("destroying")
        self._destroyed = True
        self._clear_ttl_timer()
        for teardown in reversed(self._teardowns):
            teardown()
        self._teardowns.clear()
        for plugin in reversed(self._plugins):
            plugin.destroy()
        for name in list(self._action_entries):
            self.clear_action_status_signal(name)
        for ref in self._effects:
            ref.destroy()
        self._effects.clear()
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()

    async def __aenter__(self) -> StateStore:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.destroy()
