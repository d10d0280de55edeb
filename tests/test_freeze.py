from __future__ import annotations

import copy
import json
from collections import namedtuple
from dataclasses import dataclass

import pytest
from pydantic import BaseModel, ConfigDict

from signalstore.freeze import FrozenDict, FrozenList, deep_freeze, is_frozen, merge_state, thaw


def test_deep_freeze_makes_nested_containers_read_only() -> None:
    frozen = deep_freeze({"items": [{"id": 1}], "tags": {"a"}, "pair": (1, [2])})

    assert isinstance(frozen, FrozenDict)
    assert isinstance(frozen["items"], FrozenList)
    assert isinstance(frozen["items"][0], FrozenDict)
    assert frozen["tags"] == frozenset({"a"})
    assert isinstance(frozen["pair"][1], FrozenList)

    with pytest.raises(TypeError):
        frozen["new"] = 1
    with pytest.raises(TypeError):
        frozen["items"].append({})
    with pytest.raises(TypeError):
        frozen["items"][0]["id"] = 2
    with pytest.raises(TypeError):
        frozen.update({"x": 1})


def test_frozen_containers_compare_and_serialize_like_builtins() -> None:
    frozen = deep_freeze({"a": [1, 2], "b": {"c": None}})

    assert frozen == {"a": [1, 2], "b": {"c": None}}
    assert json.loads(json.dumps(frozen)) == {"a": [1, 2], "b": {"c": None}}
    assert copy.deepcopy(frozen) is frozen


def test_deep_freeze_handles_cycles() -> None:
    node: dict[str, object] = {"name": "root"}
    node["self"] = node

    frozen = deep_freeze(node)

    assert frozen["self"] is frozen


def test_deep_freeze_returns_frozen_values_unchanged() -> None:
    frozen = deep_freeze({"a": 1})
    assert deep_freeze(frozen) is frozen
    assert is_frozen(frozen)
    assert not is_frozen({"a": 1})


def test_frozen_dataclass_passes_through() -> None:
    @dataclass(frozen=True)
    class Point:
        x: int
        y: int

    point = Point(1, 2)
    assert deep_freeze({"p": point})["p"] is point
    assert is_frozen(point)


class _Profile(BaseModel):
    name: str
    tags: list[str] = []


class _FrozenProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    tags: list[str] = []


class _FrozenTags(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    tags: tuple[str, ...] = ()


def test_mutable_model_is_snapshotted() -> None:
    profile = _Profile(name="ada", tags=["x"])

    frozen = deep_freeze({"profile": profile})["profile"]

    assert isinstance(frozen, FrozenDict)
    assert frozen == {"name": "ada", "tags": ["x"]}
    with pytest.raises(TypeError):
        frozen["tags"].append("y")
    profile.tags.append("y")
    assert frozen["tags"] == ["x"]


def test_frozen_model_with_mutable_field_is_converted() -> None:
    profile = _FrozenProfile(name="ada", tags=["x"])
    assert not is_frozen(profile)

    frozen = deep_freeze(profile)

    assert isinstance(frozen, FrozenDict)
    with pytest.raises(TypeError):
        frozen["tags"].append("y")
    settled = _FrozenTags(name="ada", tags=("x",))
    assert deep_freeze(settled) is settled


def test_plain_and_mutable_frozen_dataclasses_are_converted() -> None:
    @dataclass
    class Counter:
        count: int
        seen: list[int]

    @dataclass(frozen=True)
    class Holder:
        items: list[int]

    counter = Counter(1, [1])
    frozen = deep_freeze({"counter": counter, "holder": Holder([1, 2])})

    assert frozen["counter"] == {"count": 1, "seen": [1]}
    assert frozen["holder"] == {"items": [1, 2]}
    with pytest.raises(TypeError):
        frozen["counter"]["count"] = 2
    with pytest.raises(TypeError):
        frozen["holder"]["items"].append(3)
    counter.count = 5
    assert frozen["counter"]["count"] == 1


def test_bytearray_becomes_bytes() -> None:
    frozen = deep_freeze({"raw": bytearray(b"ab")})

    assert frozen["raw"] == b"ab"
    assert type(frozen["raw"]) is bytes


def test_plain_object_attributes_are_snapshotted() -> None:
    class Session:
        def __init__(self) -> None:
            self.user = "ada"
            self.roles = ["admin"]
            self._token = "secret"

    callback = print
    frozen = deep_freeze({"session": Session(), "callback": callback})

    assert frozen["session"] == {"user": "ada", "roles": ["admin"]}
    with pytest.raises(TypeError):
        frozen["session"]["roles"].append("guest")
    assert frozen["callback"] is callback


def test_tuple_reached_through_its_own_item_is_frozen_once() -> None:
    items: list[object] = []
    pair = (items,)
    items.append(pair)

    frozen = deep_freeze(pair)

    assert isinstance(frozen[0], FrozenList)
    assert frozen[0][0] is frozen


def test_namedtuple_keeps_its_type() -> None:
    Point = namedtuple("Point", "x y")

    frozen = deep_freeze(Point(1, [2]))

    assert isinstance(frozen, Point)
    assert isinstance(frozen.y, FrozenList)


def test_merge_state_is_shallow() -> None:
    current = deep_freeze({"user": {"name": "a", "age": 1}, "count": 1})

    merged = merge_state(current, {"user": {"name": "b"}})

    assert merged == {"user": {"name": "b"}, "count": 1}
    assert current["user"]["age"] == 1


def test_thaw_returns_plain_mutable_containers() -> None:
    plain = thaw(deep_freeze({"items": [{"id": 1}], "pair": (1, 2)}))

    assert type(plain) is dict
    assert type(plain["items"]) is list
    plain["items"].append({"id": 2})
    assert plain == {"items": [{"id": 1}, {"id": 2}], "pair": [1, 2]}
