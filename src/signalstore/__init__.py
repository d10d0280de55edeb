"""signalstore - Reactive, asynchronously loaded state stores."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("signalstore")
except PackageNotFoundError:
    __version__ = "0+local"
from signalstore._logging import configure_logging, scoped_logger
from signalstore.actions import wrap_action_with_status
from signalstore.builder import (
    ResourceStoreBuilder,
    ResourceStoreDefinition,
    ResourceStoreFactory,
    StoreBuilder,
    StoreDefinition,
    StoreFactory,
)
from signalstore.config import StoreSettings, get_settings, set_settings
from signalstore.exceptions import StoreConfigError, StoreError, StoreOperationError, wrap_error
from signalstore.freeze import FrozenDict, FrozenList, deep_freeze, is_frozen, merge_state, thaw
from signalstore.guards import ensure_resolved, resolve_store
from signalstore.history import HistoryEvent, StoreHistory, get_store_history, set_store_history
from signalstore.lifecycle import DestroyScope
from signalstore.navigation import NavigationSource, Navigator, TransitionEnd, TransitionStart
from signalstore.plugins import (
    AutoRefreshPlugin,
    ErrorHandlerPlugin,
    LazyCachePlugin,
    PersistencePlugin,
    StorePlugin,
    with_auto_refresh,
    with_error_handler,
    with_lazy_cache,
    with_persistence,
)
from signalstore.resource import ResourceStore
from signalstore.signals import Computed, Effect, Signal, effect, untracked
from signalstore.status import StoreStatus
from signalstore.storage import JsonFileStorage, MemoryStorage, StorageBackend
from signalstore.store import StateStore, StoreNamespace

__all__ = [
    "AutoRefreshPlugin",
    "Computed",
    "DestroyScope",
    "Effect",
    "ErrorHandlerPlugin",
    "FrozenDict",
    "FrozenList",
    "HistoryEvent",
    "JsonFileStorage",
    "LazyCachePlugin",
    "MemoryStorage",
    "NavigationSource",
    "Navigator",
    "PersistencePlugin",
    "ResourceStore",
    "ResourceStoreBuilder",
    "ResourceStoreDefinition",
    "ResourceStoreFactory",
    "Signal",
    "StateStore",
    "StorageBackend",
    "StoreBuilder",
    "StoreConfigError",
    "StoreDefinition",
    "StoreError",
    "StoreFactory",
    "StoreHistory",
    "StoreNamespace",
    "StoreOperationError",
    "StorePlugin",
    "StoreSettings",
    "StoreStatus",
    "TransitionEnd",
    "TransitionStart",
    "__version__",
    "configure_logging",
    "deep_freeze",
    "effect",
    "ensure_resolved",
    "get_settings",
    "get_store_history",
    "is_frozen",
    "merge_state",
    "resolve_store",
    "scoped_logger",
    "set_settings",
    "set_store_history",
    "thaw",
    "untracked",
    "with_auto_refresh",
    "with_error_handler",
    "with_lazy_cache",
    "with_persistence",
    "wrap_action_with_status",
    "wrap_error",
]
