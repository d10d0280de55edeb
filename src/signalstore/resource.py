"""Stores holding a single value loaded from a set of parameters.

A :class:`ResourceStore` is a :class:`~signalstore.store.StateStore` whose
loader takes the current parameters (``user_id``, a search query, ...) and
returns one value. Changing the parameters reloads the store.

Example::

    async def load_user(params: Mapping[str, Any]) -> dict[str, Any]:
        return await api.get_user(params["id"])

    store = ResourceStore(load_user, initial_params={"id": 1}, default_value={})
    await store.reload()
    store.value()
    await store.set_params({"id": 2})
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from signalstore._redact import redact_for_log
from signalstore.config import StoreSettings
from signalstore.exceptions import StoreConfigError, StoreOperationError
from signalstore.freeze import deep_freeze
from signalstore.history import StoreHistory
from signalstore.plugins.base import StorePlugin
from signalstore.signals import Computed, Signal
from signalstore.store import StateStore

ResourceLoader = Callable[[Any], Awaitable[Any] | Any]

VALUE_KEY = "value"


class ResourceStore(StateStore):
    """Parameter-driven store exposing a single ``value``.

    Parameters
    ----------
    loader : callable
        Called with the current (frozen) parameters; returns the value.
    initial_params : Any
        Parameters used for the first load.
    default_value : Any
        Published before the first load and whenever the store is in error.

    The remaining keyword arguments are those of
    :class:`~signalstore.store.StateStore`. The state snapshot is
    ``{"value": <last loaded value>}``.
    """

    def __init__(
        self,
        loader: ResourceLoader,
        *,
        initial_params: Any = None,
        default_value: Any = None,
        scope_name: str | None = None,
        ttl: float | None = None,
        plugins: Sequence[StorePlugin] = (),
        history: StoreHistory | None = None,
        clock: Callable[[], float] = time.monotonic,
        settings: StoreSettings | None = None,
    ) -> None:
        if loader is None or not callable(loader):
            raise StoreConfigError(f"Resource store '{scope_name or type(self).__name__}' requires a loader function")
        self._resource_loader = loader
        self._default_value = deep_freeze(default_value)
        self._params_signal: Signal[Any] = Signal(deep_freeze(initial_params), "params")
        super().__init__(
            self._load_resource,
            scope_name=scope_name,
            initial_state={VALUE_KEY: self._default_value},
            ttl=ttl,
            plugins=plugins,
            history=history,
            clock=clock,
            settings=settings,
        )
        self.params: Computed[Any] = Computed(self._params_signal.get)
        self.value: Computed[Any] = Computed(self._current_value)

    @property
    def default_value(self) -> Any:
        return self._default_value

    def _current_value(self) -> Any:
        if self.error() is not None:
            return self._default_value
        return self.state()[VALUE_KEY]

    async def _load_resource(self) -> dict[str, Any]:
        params = self._params_signal.peek()
        self._logger.info("loader invoked with params=%s", redact_for_log(params))
        result = self._resource_loader(params)
        if inspect.isawaitable(result):
            result = await result
        return {VALUE_KEY: result}

    def set_params(self, params: Any) -> asyncio.Task[None]:
        """Replace the parameters and reload.

        The TTL timer and the current error are cleared right away. The load
        runs as a store task, which is returned so callers may await it.
        Cache plugins do not suppress it.
        """
        frozen = deep_freeze(params)
        self._logger.info("setParams %s", redact_for_log(frozen))
        self._clear_ttl_timer()
        self._error_signal.set(None)
        self._params_signal.set(frozen)
        return self.spawn(self._reload_for_params())

    async def _reload_for_params(self) -> None:
        if self._destroyed:
            self._logger.debug("store destroyed, params stored without reload")
            return
        try:
            await self.force_reload()
        except StoreOperationError:
            # Already published on the error slot.
            self._logger.debug("load for new params failed")
