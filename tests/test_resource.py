from __future__ import annotations

import asyncio
from typing import Any

import pytest

from signalstore.builder import ResourceStoreBuilder
from signalstore.config import StoreSettings
from signalstore.exceptions import StoreConfigError
from signalstore.freeze import FrozenDict
from signalstore.history import StoreHistory
from signalstore.plugins import LazyCachePlugin
from signalstore.resource import ResourceStore
from signalstore.status import StoreStatus


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeUserApi:
    def __init__(self) -> None:
        self.requests: list[Any] = []
        self.missing: set[int] = set()

    async def get_user(self, user_id: int) -> dict[str, Any]:
        self.requests.append(user_id)
        if user_id in self.missing:
            raise LookupError(f"user {user_id} not found")
        return {"id": user_id, "name": f"user-{user_id}"}


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _resource(api: FakeUserApi, **kwargs: Any) -> ResourceStore:
    kwargs.setdefault("history", StoreHistory(enabled=False))
    kwargs.setdefault("settings", StoreSettings())
    kwargs.setdefault("initial_params", {"id": 1})
    kwargs.setdefault("default_value", {"name": "anonymous"})
    return ResourceStore(lambda params: api.get_user(params["id"]), scope_name="user", **kwargs)


def test_value_starts_at_default() -> None:
    store = _resource(FakeUserApi())

    assert store.value() == {"name": "anonymous"}
    assert store.default_value == {"name": "anonymous"}
    assert store.params() == {"id": 1}
    assert isinstance(store.params(), FrozenDict)
    assert store.state() == {"value": {"name": "anonymous"}}
    assert store.status() == StoreStatus.IDLE


def test_missing_loader_is_a_config_error() -> None:
    with pytest.raises(StoreConfigError):
        ResourceStore(None)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_reload_loads_value_for_current_params() -> None:
    api = FakeUserApi()
    store = _resource(api)

    await store.reload()

    assert api.requests == [1]
    assert store.value() == {"id": 1, "name": "user-1"}
    assert store.is_resolved()
    with pytest.raises(TypeError):
        store.value()["name"] = "changed"


@pytest.mark.asyncio
async def test_set_params_reloads_with_new_params() -> None:
    api = FakeUserApi()
    store = _resource(api)
    await store.reload()
    seen: list[Any] = []
    store.value.subscribe(seen.append)

    await store.set_params({"id": 2})

    assert api.requests == [1, 2]
    assert store.params() == {"id": 2}
    assert store.value() == {"id": 2, "name": "user-2"}
    assert seen == [{"id": 2, "name": "user-2"}]


@pytest.mark.asyncio
async def test_value_falls_back_to_default_on_error() -> None:
    api = FakeUserApi()
    api.missing.add(2)
    store = _resource(api)
    await store.reload()

    await store.set_params({"id": 2})

    assert store.is_error()
    assert store.error_message() == "user 2 not found"
    assert store.value() == {"name": "anonymous"}
    # Last good snapshot is kept underneath.
    assert store.state() == {"value": {"id": 1, "name": "user-1"}}

    task = store.set_params({"id": 3})
    assert store.error() is None
    assert store.error_message() is None
    await task

    assert store.value() == {"id": 3, "name": "user-3"}


@pytest.mark.asyncio
async def test_set_params_is_not_suppressed_by_lazy_cache() -> None:
    api = FakeUserApi()
    store = _resource(api, plugins=[LazyCachePlugin(60)], clock=FakeClock())
    await store.reload()
    await store.reload()
    assert api.requests == [1]

    await store.set_params({"id": 4})

    assert api.requests == [1, 4]
    assert store.value()["id"] == 4


@pytest.mark.asyncio
async def test_set_params_after_destroy_does_nothing() -> None:
    api = FakeUserApi()
    store = _resource(api)
    store.destroy()

    store.set_params({"id": 5})
    await _drain()

    assert api.requests == []


@pytest.mark.asyncio
async def test_builder_creates_resource_stores() -> None:
    api = FakeUserApi()
    factory = (
        ResourceStoreBuilder()
        .with_scope_name("profile")
        .add_dependency("users")
        .with_initial_params({"id": 7})
        .with_default_value({})
        .with_loader(lambda params, users: users.get_user(params["id"]))
        .with_selector("name", lambda state, users: state["value"].get("name"))
        .build_provider()
    )

    store = factory.resolve(lambda descriptor: api, history=StoreHistory(enabled=False), settings=StoreSettings())
    assert isinstance(store, ResourceStore)
    assert store.value() == {}
    await _drain()

    assert api.requests == [7]
    assert store.value() == {"id": 7, "name": "user-7"}
    assert store.selectors.name() == "user-7"

    await store.set_params({"id": 8})
    assert store.selectors.name() == "user-8"
    store.destroy()


def test_resource_builder_configuration_errors() -> None:
    builder = ResourceStoreBuilder().with_initial_params(None)

    with pytest.raises(StoreConfigError):
        builder.with_initial_state({"value": 1})
    with pytest.raises(StoreConfigError):
        builder.with_initial_params({"id": 1})
    builder.with_default_value(0)
    with pytest.raises(StoreConfigError):
        builder.with_default_value(1)
    with pytest.raises(StoreConfigError):
        builder.build_provider()
