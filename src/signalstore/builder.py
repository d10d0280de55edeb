"""Fluent store configuration and per-scope store factories.

A :class:`StoreBuilder` collects configuration once. ``build_provider()``
freezes it into an immutable :class:`StoreDefinition` wrapped in a
:class:`StoreFactory`; each ``create()`` call then produces an independent
:class:`~signalstore.store.StateStore` with its own plugins, timers and
action statuses.

Example::

    factory = (
        StoreBuilder()
        .with_scope_name("todos")
        .with_initial_state({"items": []})
        .add_dependency("api")
        .with_loader(lambda api: api.fetch_todos())
        .with_ttl(30)
        .with_action("add", lambda store, api: api.add_todo)
        .with_selector("count", lambda state, api: len(state["items"]))
        .build_provider()
    )
    store = factory.create(api_client, navigation=navigator)
"""

from __future__ import annotations

import asyncio
import copy
import functools
import logging
from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any

from signalstore.actions import wrap_action_with_status
from signalstore.config import StoreSettings
from signalstore.exceptions import StoreConfigError
from signalstore.freeze import FrozenDict, deep_freeze
from signalstore.history import StoreHistory
from signalstore.lifecycle import DestroyScope
from signalstore.navigation import NavigationEvent, NavigationSource, TransitionEnd, TransitionStart
from signalstore.plugins.auto_refresh import AutoRefreshPlugin
from signalstore.plugins.base import StorePlugin
from signalstore.plugins.error_handler import ErrorCallback, ErrorHandlerPlugin
from signalstore.plugins.lazy_cache import LazyCachePlugin
from signalstore.plugins.persistence import PersistencePlugin
from signalstore.resource import ResourceStore
from signalstore.signals import Computed
from signalstore.storage import StorageBackend
from signalstore.store import StateStore

_logger = logging.getLogger(__name__)

_RESERVED_ACTIONS = frozenset({"reload", "force_reload"})

PluginFactory = Callable[[], StorePlugin]
ActionFactory = Callable[..., Callable[..., Any]]
SelectorFn = Callable[..., Any]
SetupFn = Callable[..., None]


@dataclass(frozen=True)
class StoreDefinition:
    """Immutable snapshot of a builder's configuration."""

    name: str
    loader: Callable[..., Any]
    initial_state: FrozenDict = field(default_factory=FrozenDict)
    ttl: float | None = None
    dependencies: tuple[Hashable, ...] = ()
    plugins: tuple[PluginFactory, ...] = ()
    actions: tuple[tuple[str, ActionFactory], ...] = ()
    selectors: tuple[tuple[str, SelectorFn], ...] = ()
    setups: tuple[SetupFn, ...] = ()


def _plugin_factory(plugin: StorePlugin | PluginFactory) -> PluginFactory:
    if isinstance(plugin, StorePlugin):
        # Each store gets its own copy; plugins hold per-store state.
        return functools.partial(copy.copy, plugin)
    if callable(plugin):
        return plugin
    raise StoreConfigError(f"Expected a StorePlugin or plugin factory, got {type(plugin).__name__}")


class StoreBuilder:
    """Collects store configuration. Each scalar field may be set once."""

    def __init__(self) -> None:
        self._scope_name: str | None = None
        self._initial_state: Mapping[str, Any] | None = None
        self._loader: Callable[..., Any] | None = None
        self._ttl: float | None = None
        self._dependencies: list[Hashable] = []
        self._plugins: list[PluginFactory] = []
        self._actions: dict[str, ActionFactory] = {}
        self._selectors: dict[str, SelectorFn] = {}
        self._setups: list[SetupFn] = []
        self._built = False

    def _ensure_mutable(self) -> None:
        if self._built:
            raise StoreConfigError("StoreBuilder cannot be modified after build_provider()")

    def _ensure_unset(self, field_name: str, current: Any) -> None:
        self._ensure_mutable()
        if current is not None:
            raise StoreConfigError(f"StoreBuilder {field_name} is already set")

    def with_scope_name(self, name: str) -> StoreBuilder:
        self._ensure_unset("scope name", self._scope_name)
        if not name:
            raise StoreConfigError("Store scope name must not be empty")
        self._scope_name = name
        return self

    def with_initial_state(self, state: Mapping[str, Any]) -> StoreBuilder:
        self._ensure_unset("initial state", self._initial_state)
        self._initial_state = deep_freeze(dict(state))
        return self

    def with_loader(self, loader: Callable[..., Any]) -> StoreBuilder:
        """Set the loader; it receives the resolved dependencies positionally."""
        self._ensure_unset("loader", self._loader)
        if not callable(loader):
            raise StoreConfigError("Store loader must be callable")
        self._loader = loader
        return self

    def with_ttl(self, ttl: float) -> StoreBuilder:
        self._ensure_unset("TTL", self._ttl)
        if ttl < 0:
            raise StoreConfigError(f"Store TTL must be >= 0, got {ttl}")
        self._ttl = float(ttl)
        return self

    def add_dependency(self, descriptor: Hashable) -> StoreBuilder:
        self._ensure_mutable()
        self._dependencies.append(descriptor)
        return self

    def with_plugin(self, plugin: StorePlugin | PluginFactory) -> StoreBuilder:
        self._ensure_mutable()
        self._plugins.append(_plugin_factory(plugin))
        return self

    def with_lazy_cache(self, window: float) -> StoreBuilder:
        LazyCachePlugin(window)  # validate now rather than at create()
        return self.with_plugin(functools.partial(LazyCachePlugin, window))

    def with_auto_refresh(self, interval: float) -> StoreBuilder:
        return self.with_plugin(functools.partial(AutoRefreshPlugin, interval))

    def with_persistence(self, backend: StorageBackend, key: str | None = None) -> StoreBuilder:
        return self.with_plugin(functools.partial(PersistencePlugin, backend, key))

    def with_error_handler(self, callback: ErrorCallback) -> StoreBuilder:
        return self.with_plugin(functools.partial(ErrorHandlerPlugin, callback))

    def with_action(self, name: str, factory: ActionFactory) -> StoreBuilder:
        """Register an action.

        *factory* is called as ``factory(store, *deps)`` and must return the
        action callable; it is exposed as ``store.actions.<name>`` wrapped
        with status tracking.
        """
        self._ensure_mutable()
        if name in _RESERVED_ACTIONS:
            raise StoreConfigError(f"Action name '{name}' is reserved")
        if name in self._actions:
            raise StoreConfigError(f"Action '{name}' is already registered")
        self._actions[name] = factory
        return self

    def with_selector(self, name: str, fn: SelectorFn) -> StoreBuilder:
        """Register ``store.selectors.<name>``, a computed ``fn(state, *deps)``."""
        self._ensure_mutable()
        if name in self._selectors:
            raise StoreConfigError(f"Selector '{name}' is already registered")
        self._selectors[name] = fn
        return self

    def with_setup(self, fn: SetupFn) -> StoreBuilder:
        """Run ``fn(store, *deps)`` once per created store, before the first load."""
        self._ensure_mutable()
        self._setups.append(fn)
        return self

    def _definition(self, name: str) -> StoreDefinition:
        return StoreDefinition(
            name=name,
            loader=self._loader,  # type: ignore[arg-type]
            initial_state=deep_freeze(dict(self._initial_state or {})),
            ttl=self._ttl,
            dependencies=tuple(self._dependencies),
            plugins=tuple(self._plugins),
            actions=tuple(self._actions.items()),
            selectors=tuple(self._selectors.items()),
            setups=tuple(self._setups),
        )

    def _make_factory(self, definition: StoreDefinition) -> StoreFactory:
        return StoreFactory(definition)

    def build_provider(self, name: str | None = None) -> StoreFactory:
        self._ensure_mutable()
        if self._loader is None:
            raise StoreConfigError(f"{type(self).__name__} requires a loader (call with_loader())")
        definition = self._definition(self._scope_name or name or "Store")
        self._built = True
        # Release configuration; the definition is now the only holder.
        self._dependencies = []
        self._plugins = []
        self._actions = {}
        self._selectors = {}
        self._setups = []
        _logger.debug("Built store provider %s", definition.name)
        return self._make_factory(definition)


def _bind_navigation(store: StateStore, navigation: NavigationSource) -> Callable[[], None]:
    initial_url = navigation.url

    def on_event(event: NavigationEvent) -> None:
        if isinstance(event, TransitionStart):
            store.pause_ttl()
        elif isinstance(event, TransitionEnd):
            if event.url == initial_url:
                store.resume_ttl()
            else:
                store.pause_ttl()

    return navigation.subscribe(on_event)


def _selector(store: StateStore, fn: SelectorFn, deps: Sequence[Any]) -> Computed[Any]:
    return Computed(lambda: fn(store.state(), *deps))


class StoreFactory:
    """Creates configured stores from a :class:`StoreDefinition`."""

    def __init__(self, definition: StoreDefinition) -> None:
        self._definition = definition

    @property
    def definition(self) -> StoreDefinition:
        return self._definition

    @property
    def name(self) -> str:
        return self._definition.name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._definition.name!r})"

    def _construct(self, deps: Sequence[Any], **store_kwargs: Any) -> StateStore:
        loader = self._definition.loader

        def bound_loader() -> Any:
            return loader(*deps)

        return StateStore(bound_loader, initial_state=self._definition.initial_state, **store_kwargs)

    def create(
        self,
        *deps: Any,
        navigation: NavigationSource | None = None,
        destroy_scope: DestroyScope | None = None,
        history: StoreHistory | None = None,
        settings: StoreSettings | None = None,
        clock: Callable[[], float] | None = None,
    ) -> StateStore:
        """Create a store and start its initial load.

        Must be called while an event loop is running. If wiring the store
        fails (an action factory, selector or setup callback raises), the
        store is destroyed before the error propagates.
        """
        definition = self._definition
        if len(deps) != len(definition.dependencies):
            raise StoreConfigError(
                f"Store '{definition.name}' declares {len(definition.dependencies)} "
                f"dependencies, got {len(deps)}"
            )
        try:
            asyncio.get_running_loop()
        except RuntimeError as err:
            raise StoreConfigError(f"Store '{definition.name}' must be created inside a running event loop") from err

        store_kwargs: dict[str, Any] = {}
        if clock is not None:
            store_kwargs["clock"] = clock
        store = self._construct(
            deps,
            scope_name=definition.name,
            ttl=definition.ttl,
            plugins=[make_plugin() for make_plugin in definition.plugins],
            history=history,
            settings=settings,
            **store_kwargs,
        )

        try:
            if navigation is not None:
                store.on_destroy(_bind_navigation(store, navigation))

            for action_name, factory in definition.actions:
                action = factory(store, *deps)
                store.actions.register(action_name, wrap_action_with_status(store, action, action_name))
            for selector_name, fn in definition.selectors:
                store.selectors.register(selector_name, _selector(store, fn, deps))
            for setup in definition.setups:
                setup(store, *deps)
        except BaseException:
            store.logger.error("store wiring failed, destroying")
            store.destroy()
            raise

        if destroy_scope is not None:
            destroy_scope.on_destroy(store.destroy)

        store.logger.debug("created")
        store.spawn(store.reload())
        return store

    def resolve(self, resolver: Callable[[Hashable], Any], **kwargs: Any) -> StateStore:
        """Create a store, looking each declared dependency up through *resolver*."""
        deps = [resolver(descriptor) for descriptor in self._definition.dependencies]
        return self.create(*deps, **kwargs)


@dataclass(frozen=True)
class ResourceStoreDefinition(StoreDefinition):
    """:class:`StoreDefinition` plus the parameters and fallback value of a resource."""

    initial_params: Any = None
    default_value: Any = None


class ResourceStoreFactory(StoreFactory):
    """Creates :class:`~signalstore.resource.ResourceStore` instances."""

    _definition: ResourceStoreDefinition

    def _construct(self, deps: Sequence[Any], **store_kwargs: Any) -> ResourceStore:
        loader = self._definition.loader

        def bound_loader(params: Any) -> Any:
            return loader(params, *deps)

        return ResourceStore(
            bound_loader,
            initial_params=self._definition.initial_params,
            default_value=self._definition.default_value,
            **store_kwargs,
        )


_UNSET: Any = object()


class ResourceStoreBuilder(StoreBuilder):
    """Builder for parameter-driven resource stores.

    The loader is called as ``loader(params, *deps)``. State is managed by the
    store (``{"value": ...}``), so ``with_initial_state`` is not available;
    use ``with_default_value`` instead.
    """

    def __init__(self) -> None:
        super().__init__()
        self._initial_params: Any = _UNSET
        self._default_value: Any = _UNSET

    def with_initial_state(self, state: Mapping[str, Any]) -> StoreBuilder:
        raise StoreConfigError("Resource stores manage their own state; use with_default_value()")

    def with_initial_params(self, params: Any) -> ResourceStoreBuilder:
        self._ensure_mutable()
        if self._initial_params is not _UNSET:
            raise StoreConfigError("ResourceStoreBuilder initial params are already set")
        self._initial_params = deep_freeze(params)
        return self

    def with_default_value(self, value: Any) -> ResourceStoreBuilder:
        self._ensure_mutable()
        if self._default_value is not _UNSET:
            raise StoreConfigError("ResourceStoreBuilder default value is already set")
        self._default_value = deep_freeze(value)
        return self

    def _definition(self, name: str) -> ResourceStoreDefinition:
        base = super()._definition(name)
        return ResourceStoreDefinition(
            **{f.name: getattr(base, f.name) for f in fields(base)},
            initial_params=None if self._initial_params is _UNSET else self._initial_params,
            default_value=None if self._default_value is _UNSET else self._default_value,
        )

    def _make_factory(self, definition: StoreDefinition) -> ResourceStoreFactory:
        return ResourceStoreFactory(definition)
