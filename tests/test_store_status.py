from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import pytest
from pydantic import BaseModel

from signalstore._logging import STORE_LOGGER_NAME
from signalstore.exceptions import StoreConfigError, StoreOperationError
from signalstore.history import StoreHistory
from signalstore.status import StoreStatus
from signalstore.store import StateStore


def _store(loader: Any, **kwargs: Any) -> StateStore:
    kwargs.setdefault("history", StoreHistory(enabled=False))
    return StateStore(loader, scope_name="test", **kwargs)


def test_initial_state_is_frozen_and_idle() -> None:
    async def loader() -> dict[str, Any]:
        return {}

    store = _store(loader, initial_state={"items": [1]})

    assert store.status() == StoreStatus.IDLE
    assert store.is_idle()
    assert store.is_loaded()
    assert store.error() is None
    with pytest.raises(TypeError):
        store.state()["items"].append(2)


def test_missing_loader_is_a_config_error() -> None:
    with pytest.raises(StoreConfigError):
        StateStore(None)  # type: ignore[arg-type]


def test_non_mapping_initial_state_is_a_config_error() -> None:
    async def loader() -> dict[str, Any]:
        return {}

    with pytest.raises(StoreConfigError):
        _store(loader, initial_state=[1, 2])  # type: ignore[arg-type]


def test_negative_ttl_is_a_config_error() -> None:
    async def loader() -> dict[str, Any]:
        return {}

    with pytest.raises(StoreConfigError):
        _store(loader, ttl=-1)


@pytest.mark.asyncio
async def test_successful_reload_publishes_loading_then_resolved() -> None:
    async def loader() -> dict[str, Any]:
        return {"count": 3}

    store = _store(loader, initial_state={"count": 0, "label": "x"})
    seen: list[StoreStatus] = []
    store.status.subscribe(seen.append)

    await store.reload()

    assert seen == [StoreStatus.LOADING, StoreStatus.RESOLVED]
    assert store.state() == {"count": 3, "label": "x"}
    assert store.is_resolved()
    assert store.last_fetch_at is not None


@pytest.mark.asyncio
async def test_failed_reload_keeps_state_and_exposes_error() -> None:
    fail = True

    async def loader() -> dict[str, Any]:
        if fail:
            raise RuntimeError("boom")
        return {"count": 1}

    store = _store(loader, initial_state={"count": 0})
    seen: list[StoreStatus] = []
    store.status.subscribe(seen.append)

    await store.reload()

    assert store.status() == StoreStatus.ERROR
    assert store.is_error()
    error = store.error()
    assert isinstance(error, StoreOperationError)
    assert error.message == "boom"
    assert error.name == "RuntimeError"
    assert error.store_name == "test"
    assert store.state() == {"count": 0}
    assert store.error_message() == "boom"

    await store.reload()
    fail = False
    await store.reload()

    assert seen == [
        StoreStatus.LOADING,
        StoreStatus.ERROR,
        StoreStatus.LOADING,
        StoreStatus.ERROR,
        StoreStatus.LOADING,
        StoreStatus.RESOLVED,
    ]
    assert store.error() is None
    assert store.error_message() is None


@pytest.mark.asyncio
async def test_force_reload_reraises_wrapped_error() -> None:
    async def loader() -> dict[str, Any]:
        raise ValueError("bad payload")

    store = _store(loader)

    with pytest.raises(StoreOperationError) as exc_info:
        await store.force_reload()

    assert exc_info.value.name == "ValueError"
    assert isinstance(exc_info.value.original_error, ValueError)
    assert store.error() is exc_info.value


@pytest.mark.asyncio
async def test_clear_error_returns_to_idle() -> None:
    async def loader() -> dict[str, Any]:
        raise RuntimeError("boom")

    store = _store(loader)
    await store.reload()

    store.clear_error()

    assert store.error() is None
    assert store.status() == StoreStatus.IDLE


@pytest.mark.asyncio
async def test_only_latest_load_publishes() -> None:
    gates = [asyncio.Event(), asyncio.Event()]
    results = [{"v": 1}, {"v": 2}]
    calls = 0

    async def loader() -> dict[str, Any]:
        nonlocal calls
        index = calls
        calls += 1
        await gates[index].wait()
        return results[index]

    store = _store(loader)
    first = asyncio.create_task(store.reload())
    await asyncio.sleep(0)
    second = asyncio.create_task(store.reload())
    await asyncio.sleep(0)

    gates[1].set()
    await second
    gates[0].set()
    await first

    assert calls == 2
    assert store.state()["v"] == 2
    assert store.status() == StoreStatus.RESOLVED


@pytest.mark.asyncio
async def test_loader_may_return_none_or_model() -> None:
    class Payload(BaseModel):
        name: str
        size: int = 0

    results: list[Any] = [None, Payload(name="a")]

    async def loader() -> Any:
        return results.pop(0)

    store = _store(loader, initial_state={"size": 5})
    await store.reload()
    assert store.state() == {"size": 5}

    await store.reload()
    assert store.state() == {"size": 5, "name": "a"}


@pytest.mark.asyncio
async def test_non_mapping_result_is_a_load_error() -> None:
    async def loader() -> Any:
        return [1, 2, 3]

    store = _store(loader)
    await store.reload()

    error = store.error()
    assert error is not None
    assert error.name == "TypeError"


def test_update_state_merges_top_level_keys() -> None:
    async def loader() -> dict[str, Any]:
        return {}

    store = _store(loader, initial_state={"a": 1, "nested": {"x": 1, "y": 2}})
    seen: list[Any] = []
    store.state.subscribe(seen.append)

    store.update_state({"nested": {"x": 5}})
    store.update_state({"nested": {"x": 5}})

    assert store.state() == {"a": 1, "nested": {"x": 5}}
    assert len(seen) == 1

    store.initialize_state({"b": 2})
    assert store.state() == {"b": 2}



def test_non_mapping_partial_leaves_state_untouched(caplog: pytest.LogCaptureFixture) -> None:
    async def loader() -> dict[str, Any]:
        return {}

    store = _store(loader, initial_state={"a": 1})
    seen: list[Any] = []
    store.state.subscribe(seen.append)

    with caplog.at_level(logging.WARNING, logger=STORE_LOGGER_NAME):
        store.update_state(5)  # type: ignore[arg-type]
        store.update_state("ab")  # type: ignore[arg-type]
        store.initialize_state([("b", 2)])  # type: ignore[arg-type]

    assert store.state() == {"a": 1}
    assert seen == []
    assert "non-mapping partial of type int" in caplog.text


def test_model_and_dataclass_state_values_stay_immutable() -> None:
    @dataclass
    class Filter:
        query: str
        tags: list[str]

    class Owner(BaseModel):
        name: str
        teams: list[str]

    async def loader() -> dict[str, Any]:
        return {}

    store = _store(loader, initial_state={"filter": Filter("a", ["x"])})
    store.update_state({"owner": Owner(name="ada", teams=["core"])})

    state = store.state()
    assert state == {"filter": {"query": "a", "tags": ["x"]}, "owner": {"name": "ada", "teams": ["core"]}}
    with pytest.raises(TypeError):
        state["filter"]["tags"].append("y")
    with pytest.raises(TypeError):
        state["owner"]["teams"].append("infra")

@pytest.mark.asyncio
async def test_history_records_load_transitions() -> None:
    history = StoreHistory()

    async def loader() -> dict[str, Any]:
        return {"ok": True}

    store = _store(loader, history=history)
    await store.reload()

    events = history.get_events_by_store("test")
    assert [event.status for event in events] == [StoreStatus.LOADING, StoreStatus.RESOLVED]
    assert {event.action for event in events} == {"load"}


@pytest.mark.asyncio
async def test_destroy_is_idempotent_and_runs_teardowns_once() -> None:
    async def loader() -> dict[str, Any]:
        return {}

    torn_down: list[str] = []
    async with _store(loader, ttl=30) as store:
        store.on_destroy(lambda: torn_down.append("a"))
        await store.reload()
        assert store.ttl_scheduled

    store.destroy()

    assert store.destroyed
    assert not store.ttl_scheduled
    assert torn_down == ["a"]


def test_builtin_actions_are_registered() -> None:
    async def loader() -> dict[str, Any]:
        return {}

    store = _store(loader)

    assert "reload" in store.actions
    assert "force_reload" in store.actions
    with pytest.raises(AttributeError):
        store.actions.missing  # noqa: B018
    with pytest.raises(StoreConfigError):
        store.actions.register("reload", loader)
