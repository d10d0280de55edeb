"""Deep-freezing of state snapshots.

Python has no in-place ``freeze`` for builtin containers, so snapshots are
rebuilt from read-only container types:

* mappings  -> :class:`FrozenDict`
* lists     -> :class:`FrozenList`
* sets      -> ``frozenset``
* tuples    -> tuples of frozen items

Both read-only types subclass their builtin counterpart, so ``json.dumps``,
``isinstance(x, dict)`` and equality keep working. Cycles are preserved: each
reachable container is converted exactly once and every later reference to
it resolves to the same frozen node.
"""

from __future__ import annotations

import dataclasses
import datetime as _dt
import decimal
import enum
import fractions
import pathlib
import types
import uuid
from collections.abc import Mapping, MutableSequence, Set
from typing import Any, NoReturn

from pydantic import BaseModel

_SCALARS = (
    str,
    bytes,
    int,
    float,
    complex,
    bool,
    type(None),
    enum.Enum,
    _dt.date,
    _dt.time,
    _dt.timedelta,
    decimal.Decimal,
    fractions.Fraction,
    uuid.UUID,
    pathlib.PurePath,
    range,
)


def _read_only(self: Any, *args: Any, **kwargs: Any) -> NoReturn:
    raise TypeError(f"{type(self).__name__} is immutable")


class FrozenDict(dict):  # type: ignore[type-arg]
    """Read-only ``dict``."""

    __slots__ = ()

    __setitem__ = _read_only
    __delitem__ = _read_only
    __ior__ = _read_only
    clear = _read_only
    pop = _read_only
    popitem = _read_only
    setdefault = _read_only
    update = _read_only

    def __copy__(self) -> FrozenDict:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> FrozenDict:
        return self

    def __reduce__(self) -> tuple[Any, ...]:
        return (FrozenDict, (dict(self),))

    def __repr__(self) -> str:
        return f"FrozenDict({dict.__repr__(self)})"


class FrozenList(list):  # type: ignore[type-arg]
    """Read-only ``list``."""

    __slots__ = ()

    __setitem__ = _read_only
    __delitem__ = _read_only
    __iadd__ = _read_only
    __imul__ = _read_only
    append = _read_only
    clear = _read_only
    extend = _read_only
    insert = _read_only
    pop = _read_only
    remove = _read_only
    reverse = _read_only
    sort = _read_only

    def __copy__(self) -> FrozenList:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> FrozenList:
        return self

    def __reduce__(self) -> tuple[Any, ...]:
        return (FrozenList, (list(self),))

    def __repr__(self) -> str:
        return f"FrozenList({list.__repr__(self)})"


def _is_immutable_object(value: Any) -> bool:
    """Frozen pydantic models and frozen dataclasses whose fields are all frozen."""
    if isinstance(value, BaseModel):
        if not value.model_config.get("frozen"):
            return False
        return all(is_frozen(item) for _, item in value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        params = getattr(type(value), "__dataclass_params__", None)
        if params is None or not params.frozen:
            return False
        return all(is_frozen(getattr(value, f.name)) for f in dataclasses.fields(value))
    return False


def is_frozen(value: Any) -> bool:
    """Return ``True`` when *value* cannot be mutated through this module's types."""
    if isinstance(value, (_SCALARS, FrozenDict, FrozenList)):
        return True
    if isinstance(value, (tuple, frozenset)):
        return all(is_frozen(item) for item in value)
    return _is_immutable_object(value)


def _public_attributes(value: Any) -> dict[str, Any]:
    return {k: v for k, v in vars(value).items() if not k.startswith("_")}


def deep_freeze(value: Any, _memo: dict[int, Any] | None = None) -> Any:
    """Return a deeply immutable rendition of *value*.

    Already-frozen values are returned as-is. Mutable pydantic models and
    dataclasses become :class:`FrozenDict` snapshots of their fields, other
    plain objects a snapshot of their public attributes, and ``bytearray``
    becomes ``bytes``. Callables are kept by reference.
    """
    if isinstance(value, (_SCALARS, FrozenDict, FrozenList)):
        return value
    if _is_immutable_object(value):
        return value

    memo = {} if _memo is None else _memo
    key = id(value)
    if key in memo:
        return memo[key]

    if isinstance(value, Mapping):
        frozen_map = FrozenDict()
        memo[key] = frozen_map
        for k, v in value.items():
            dict.__setitem__(frozen_map, k, deep_freeze(v, memo))
        return frozen_map

    if isinstance(value, (list, MutableSequence)) and not isinstance(value, (bytearray, memoryview)):
        frozen_list = FrozenList()
        memo[key] = frozen_list
        list.extend(frozen_list, (deep_freeze(item, memo) for item in value))
        return frozen_list

    if isinstance(value, tuple):
        items = [deep_freeze(item, memo) for item in value]
        # A tuple can only be built after its items. If one of them led back
        # here, the inner visit already produced this tuple's frozen node.
        if key in memo:
            return memo[key]
        frozen_tuple = type(value)._make(items) if hasattr(value, "_make") else tuple(items)
        memo[key] = frozen_tuple
        return frozen_tuple

    if isinstance(value, Set):
        items = [deep_freeze(item, memo) for item in value]
        if key in memo:
            return memo[key]
        frozen_set = frozenset(items)
        memo[key] = frozen_set
        return frozen_set

    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)

    if isinstance(value, BaseModel):
        memo[key] = frozen_model = deep_freeze(value.model_dump(), memo)
        return frozen_model

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        memo[key] = frozen_fields = deep_freeze(dataclasses.asdict(value), memo)
        return frozen_fields

    if not callable(value) and not isinstance(value, types.ModuleType) and hasattr(value, "__dict__"):
        frozen_obj = FrozenDict()
        memo[key] = frozen_obj
        for k, v in _public_attributes(value).items():
            dict.__setitem__(frozen_obj, k, deep_freeze(v, memo))
        return frozen_obj

    return value


def merge_state(current: Mapping[str, Any] | None, partial: Mapping[str, Any] | None) -> FrozenDict:
    """Shallow-merge *partial* over *current* and freeze the result.

    Nested values in *partial* replace their counterparts wholesale. A
    *partial* that is not a mapping contributes nothing.
    """
    merged: dict[str, Any] = dict(current or {})
    if isinstance(partial, Mapping):
        merged.update(partial)
    result: FrozenDict = deep_freeze(merged)
    return result


def thaw(value: Any, _memo: dict[int, Any] | None = None) -> Any:
    """Convert a frozen snapshot back into plain, mutable containers."""
    memo = {} if _memo is None else _memo
    key = id(value)
    if key in memo:
        return memo[key]
    if isinstance(value, Mapping):
        plain: dict[Any, Any] = {}
        memo[key] = plain
        for k, v in value.items():
            plain[k] = thaw(v, memo)
        return plain
    if isinstance(value, (list, tuple)):
        items: list[Any] = []
        memo[key] = items
        items.extend(thaw(item, memo) for item in value)
        return items
    if isinstance(value, (set, frozenset)):
        return [thaw(item, memo) for item in value]
    return value
