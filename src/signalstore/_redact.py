"""Helpers for safe debug logging.

Stores log every state change at DEBUG level. Snapshots may hold tokens or
large payloads, so values go through :func:`redact_for_log` first.
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "accesstoken",
        "refreshtoken",
        "idtoken",
        "apikey",
        "authorization",
        "cookie",
        "sessionid",
    }
)


def _normalize_key(key: Any) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def redact_for_log(
    value: Any,
    *,
    max_string: int = 512,
    max_items: int = 50,
    _seen: frozenset[int] = frozenset(),
) -> Any:
    """Return a redacted, plain copy of *value* suitable for debug logs.

    Frozen snapshots are rendered as plain containers; cycles are shown
    as ``<cycle>``.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if id(value) in _seen:
        return "<cycle>"
    seen = _seen | {id(value)}

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for index, (k, v) in enumerate(value.items()):
            if index >= max_items:
                redacted["…"] = f"<{len(value) - max_items} more>"
                break
            key = str(k)
            if _normalize_key(key) in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, max_items=max_items, _seen=seen)
        return redacted

    if isinstance(value, (list, tuple, Set)):
        items = list(value)
        rendered = [
            redact_for_log(v, max_string=max_string, max_items=max_items, _seen=seen) for v in items[:max_items]
        ]
        if len(items) > max_items:
            rendered.append(f"<{len(items) - max_items} more>")
        return rendered

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)
