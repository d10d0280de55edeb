"""Await a store before entering a screen.

Route guards and resolvers call these before rendering something that needs
the store's data.
"""

from __future__ import annotations

from signalstore.status import StoreStatus
from signalstore.store import StateStore


async def ensure_resolved(store: StateStore) -> bool:
    """Make sure *store* has data.

    A resolved store passes without loading and a store in error fails
    without retrying. Anything else triggers ``reload()``.
    """
    status = store.status.peek()
    if status == StoreStatus.RESOLVED:
        return True
    if status == StoreStatus.ERROR:
        return False
    await store.reload()
    return store.status.peek() == StoreStatus.RESOLVED


async def resolve_store(store: StateStore) -> bool:
    """Reload *store* unconditionally and report whether it resolved."""
    await store.reload()
    return store.status.peek() == StoreStatus.RESOLVED
