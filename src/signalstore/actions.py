"""Wrap store actions with a per-action loading/resolved/error status."""

from __future__ import annotations

import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from signalstore.exceptions import wrap_error
from signalstore.freeze import deep_freeze
from signalstore.status import StoreStatus

if TYPE_CHECKING:
    from signalstore.store import StateStore

Action = Callable[..., Awaitable[Any] | Any]


def _call_params(args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if args:
        params["args"] = list(args)
    if kwargs:
        params["kwargs"] = kwargs
    return deep_freeze(params)


def wrap_action_with_status(store: StateStore, action: Action, name: str) -> Callable[..., Awaitable[Any]]:
    """Return an async wrapper tracking *action* under *name*.

    The wrapper sets the action status to ``loading`` (clearing the action's
    previous error), awaits *action*, then sets ``resolved``. On failure the
    error is wrapped, stored under *name*, the status becomes ``error`` and
    the wrapped error is re-raised to the caller. The store's main status
    is left untouched.
    """

    @functools.wraps(action)
    async def wrapped(*args: Any, **kwargs: Any) -> Any:
        status = store.get_action_status_signal(name, params=_call_params(args, kwargs))
        error = store.get_action_error_signal(name)
        error.set(None)
        status.set(StoreStatus.LOADING)
        try:
            result = action(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
        except Exception as err:
            wrapped_error = wrap_error(err, store_name=store.scope_name, action=name)
            error.set(wrapped_error)
            status.set(StoreStatus.ERROR)
            raise wrapped_error from err
        status.set(StoreStatus.RESOLVED)
        return result

    return wrapped
