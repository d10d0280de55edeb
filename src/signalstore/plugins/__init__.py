"""Built-in store plugins."""

from signalstore.plugins.auto_refresh import AutoRefreshPlugin, with_auto_refresh
from signalstore.plugins.base import ReloadFn, StorePlugin
from signalstore.plugins.error_handler import ErrorCallback, ErrorHandlerPlugin, with_error_handler
from signalstore.plugins.lazy_cache import LazyCachePlugin, with_lazy_cache
from signalstore.plugins.persistence import PersistencePlugin, with_persistence

__all__ = [
    "AutoRefreshPlugin",
    "ErrorCallback",
    "ErrorHandlerPlugin",
    "LazyCachePlugin",
    "PersistencePlugin",
    "ReloadFn",
    "StorePlugin",
    "with_auto_refresh",
    "with_error_handler",
    "with_lazy_cache",
    "with_persistence",
]
