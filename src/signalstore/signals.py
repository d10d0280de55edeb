"""Signal-based reactivity for store state.

Implements a minimal observable-value graph:

- Signal[T]: mutable cell with get/set/update and subscriptions
- Computed[T]: derived value cached until a dependency changes
- Effect: callback re-run synchronously whenever its dependencies change

Reads performed while a ``Computed`` or ``Effect`` is evaluating are tracked
through a context variable, so dependencies never have to be declared.
"""

from __future__ import annotations

from collections.abc import Callable
from contextvars import ContextVar
from typing import Any, Generic, Protocol, TypeVar

T = TypeVar("T")


class _Dependent(Protocol):
    def _invalidate(self) -> None: ...


class _Tracker:
    """Collects the sources read during one evaluation."""

    def __init__(self, owner: _Dependent) -> None:
        self.owner = owner
        self.sources: list[_Source] = []

    def track(self, source: _Source) -> None:
        if source not in self.sources:
            self.sources.append(source)


_current_tracker: ContextVar[_Tracker | None] = ContextVar("signalstore_tracker", default=None)


class _Source:
    """Something that can be read inside a tracked evaluation."""

    def __init__(self) -> None:
        self._dependents: list[_Dependent] = []

    def _track_read(self) -> None:
        tracker = _current_tracker.get()
        if tracker is not None:
            tracker.track(self)

    def _add_dependent(self, dependent: _Dependent) -> None:
        if dependent not in self._dependents:
            self._dependents.append(dependent)

    def _remove_dependent(self, dependent: _Dependent) -> None:
        if dependent in self._dependents:
            self._dependents.remove(dependent)

    def peek(self) -> Any:
        raise NotImplementedError

    def _notify(self) -> None:
        # Copy: dependents may unsubscribe (or destroy themselves) while notified.
        for dependent in list(self._dependents):
            dependent._invalidate()

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Call *callback* with the new value after every change.

        Returns a function that removes the subscription.
        """
        self.peek()
        subscription = _Subscription(self, callback)
        self._add_dependent(subscription)
        return subscription.cancel


def _changed(old: Any, new: Any) -> bool:
    if old is new:
        return False
    try:
        return bool(old != new)
    except Exception:  # noqa: BLE001 - incomparable values count as a change
        return True


def _evaluate(owner: _Dependent, fn: Callable[[], T], previous: list[_Source]) -> tuple[T, list[_Source]]:
    """Run *fn* under a fresh tracker and rewire *owner*'s subscriptions."""
    for source in previous:
        source._remove_dependent(owner)
    tracker = _Tracker(owner)
    token = _current_tracker.set(tracker)
    try:
        value = fn()
    finally:
        _current_tracker.reset(token)
        for source in tracker.sources:
            source._add_dependent(owner)
    return value, tracker.sources


def untracked(fn: Callable[[], T]) -> T:
    """Call *fn* without registering its reads with the active tracker."""
    token = _current_tracker.set(None)
    try:
        return fn()
    finally:
        _current_tracker.reset(token)


class Signal(_Source, Generic[T]):
    """Observable value.

    Writes that compare equal to the current value are ignored, so
    subscribers only hear about real changes.
    """

    def __init__(self, initial: T, key: str = "") -> None:
        super().__init__()
        self._value: T = initial
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def get(self) -> T:
        self._track_read()
        return self._value

    __call__ = get

    def peek(self) -> T:
        """Read without tracking."""
        return self._value

    def set(self, value: T) -> None:
        old = self._value
        self._value = value
        if _changed(old, value):
            self._notify()

    def update(self, reducer: Callable[[T], T]) -> None:
        self.set(reducer(self._value))

    def __repr__(self) -> str:
        return f"Signal(key={self._key!r}, value={self._value!r})"


class _Subscription:
    def __init__(self, source: _Source, callback: Callable[[Any], None]) -> None:
        self._source = source
        self._callback = callback

    def _invalidate(self) -> None:
        self._callback(self._source.peek())

    def cancel(self) -> None:
        self._source._remove_dependent(self)


class Computed(_Source, Generic[T]):
    """Cached derived value that invalidates when dependencies change."""

    def __init__(self, fn: Callable[[], T]) -> None:
        super().__init__()
        self._fn = fn
        self._value: T | None = None
        self._valid = False
        self._sources: list[_Source] = []

    def get(self) -> T:
        self._track_read()
        if not self._valid:
            self._value, self._sources = _evaluate(self, self._fn, self._sources)
            self._valid = True
        return self._value  # type: ignore[return-value]

    __call__ = get

    def peek(self) -> T:
        """Read without tracking."""
        return untracked(self.get)

    def _invalidate(self) -> None:
        if not self._valid:
            return
        if not self._dependents:
            self._valid = False
            return
        # Observed: recompute now and only propagate real changes.
        old = self._value
        self._value, self._sources = _evaluate(self, self._fn, self._sources)
        if _changed(old, self._value):
            self._notify()


class Effect:
    """Side effect re-run whenever a signal it read changes.

    An invalidation that arrives while the effect is running is queued and
    the effect runs once more after the current pass completes.
    """

    def __init__(self, fn: Callable[[], Any]) -> None:
        self._fn = fn
        self._sources: list[_Source] = []
        self._running = False
        self._dirty = False
        self._destroyed = False
        self._run()

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def _run(self) -> None:
        self._running = True
        try:
            while True:
                self._dirty = False
                _, self._sources = _evaluate(self, self._fn, self._sources)
                if self._destroyed:
                    # Destroyed from inside its own callback.
                    self.destroy()
                    break
                if not self._dirty:
                    break
        finally:
            self._running = False

    def _invalidate(self) -> None:
        if self._destroyed:
            return
        if self._running:
            self._dirty = True
            return
        self._run()

    def destroy(self) -> None:
        self._destroyed = True
        for source in self._sources:
            source._remove_dependent(self)
        self._sources = []


def effect(fn: Callable[[], Any]) -> Effect:
    """Create and immediately run an :class:`Effect`."""
    return Effect(fn)
