# =============================================================================
# TS Remote Client -- Configuration
# =============================================================================
#
# Nested ``namespace -> key -> value`` mapping. Caller overrides are merged
# into the defaults, but only for keys the defaults already define: unknown
# keys are dropped, not added.
# =============================================================================

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from ._logging import logger
from .constants import (
    DEFAULT_APP_DESCRIPTION,
    DEFAULT_APP_IDENTIFIER,
    DEFAULT_APP_NAME,
    DEFAULT_APP_VERSION,
    DEFAULT_HOST,
    DEFAULT_PORT,
    URL_SCHEME,
)

DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "api": {
        "host": DEFAULT_HOST,
        "port": DEFAULT_PORT,
        "key": "",
        "event_debug": False,
    },
    "app": {
        "name": DEFAULT_APP_NAME,
        "identifier": DEFAULT_APP_IDENTIFIER,
        "version": DEFAULT_APP_VERSION,
        "description": DEFAULT_APP_DESCRIPTION,
    },
}


def merge_config(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *override* into a copy of *base*.

    A key from *override* is applied only if *base* already has it at the
    same nesting level. When both sides hold a mapping the merge recurses,
    otherwise the override value replaces the base value. Neither argument
    is modified.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if key not in merged:
            logger.debug("Ignoring unknown config key %r", key)
            continue
        if isinstance(merged[key], Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ClientConfig:
    """Client configuration built from :data:`DEFAULT_CONFIG`.

    Args:
        overrides: Partial nested mapping, e.g. ``{"api": {"key": "..."}}``.

    Example::

        cfg = ClientConfig({"api": {"port": 1234}})
        cfg.get("api")["host"]   # "localhost"
        cfg.url                  # "ws://localhost:1234/"
    """

    def __init__(self, overrides: Mapping[str, Any] | None = None) -> None:
        self._config = merge_config(DEFAULT_CONFIG, overrides or {})

    def get(self, namespace: str) -> dict[str, Any] | None:
        """Return a copy of *namespace*, or ``None`` if it is unknown."""
        section = self._config.get(namespace)
        if section is None:
            return None
        return copy.deepcopy(section)

    def set(self, overrides: Mapping[str, Any]) -> None:
        """Apply a partial override with the same merge rules as the constructor."""
        self._config = merge_config(self._config, overrides)

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._config)

    @property
    def url(self) -> str:
        api = self._config["api"]
        return f"{URL_SCHEME}://{api['host']}:{int(api['port'])}/"

    def __repr__(self) -> str:
        api = dict(self._config["api"])
        if api.get("key"):
            api["key"] = "***"
        return f"ClientConfig(api={api!r}, app={self._config['app']!r})"
