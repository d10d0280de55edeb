"""Runtime settings for signalstore."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_list(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclasses.dataclass(frozen=True)
class StoreSettings:
    """Process-wide store settings.

    Parameters
    ----------
    history_enabled : bool
        Record action and load transitions in the shared
        :class:`~signalstore.history.StoreHistory`. Disabled by default.
    log_level : str
        Level applied to the ``signalstore`` logger by
        :func:`~signalstore._logging.configure_logging`.
    restricted_scopes : tuple[str, ...]
        When non-empty, only these store scopes emit scoped log records.
    storage_prefix : str
        Prefix prepended to every key written by the persistence plugin.
    default_ttl : float
        TTL in seconds applied by builders that do not call ``with_ttl``.
        ``0`` disables TTL reloads.
    """

    history_enabled: bool = False
    log_level: str = "WARNING"
    restricted_scopes: tuple[str, ...] = ()
    storage_prefix: str = "signalstore-state-"
    default_ttl: float = 0.0

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreSettings:
        """Create settings from ``SIGNALSTORE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        kwargs: dict[str, Any] = {}

        if "history_enabled" not in overrides:
            kwargs["history_enabled"] = _env_bool(env.get("SIGNALSTORE_HISTORY_ENABLED"), False)

        level_env = env.get("SIGNALSTORE_LOG_LEVEL")
        if level_env is not None:
            kwargs["log_level"] = level_env.strip().upper()

        scopes_env = env.get("SIGNALSTORE_RESTRICTED_SCOPES")
        if scopes_env is not None:
            kwargs["restricted_scopes"] = _env_list(scopes_env)

        prefix_env = env.get("SIGNALSTORE_STORAGE_PREFIX")
        if prefix_env is not None:
            kwargs["storage_prefix"] = prefix_env

        ttl_env = env.get("SIGNALSTORE_DEFAULT_TTL")
        if ttl_env is not None and "default_ttl" not in overrides:
            kwargs["default_ttl"] = float(ttl_env)

        restricted = overrides.get("restricted_scopes")
        if restricted is not None:
            overrides["restricted_scopes"] = tuple(restricted)

        kwargs.update(overrides)
        return cls(**kwargs)


_settings = StoreSettings()


def get_settings() -> StoreSettings:
    """Return the process-wide settings."""
    return _settings


def set_settings(settings: StoreSettings) -> None:
    """Replace the process-wide settings."""
    global _settings
    _settings = settings
