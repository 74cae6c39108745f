"""Runtime settings and the objects shared with plugins."""

from __future__ import annotations

import queue
import signal
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

# Signals queued here are handled by the process monitor, e.g. SIGUSR2 to
# reload nginx.
SIGNALS: "queue.Queue[signal.Signals]" = queue.Queue(maxsize=1)

_MISSING = object()
_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _normalize(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k).lower(): _normalize(v) for k, v in value.items()}
    return value


def _split(key: str) -> list[str]:
    return key.lower().split(".")


def _lookup(tree: dict, parts: list[str]) -> Any:
    node: Any = tree
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def _store(tree: dict, parts: list[str], value: Any) -> None:
    node = tree
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[parts[-1]] = _normalize(value)


def _leaf_keys(tree: dict, prefix: str = "") -> Iterator[str]:
    for key, value in tree.items():
        path = prefix + key
        if isinstance(value, dict) and value:
            yield from _leaf_keys(value, path + ".")
        else:
            yield path


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


class Settings:
    """Layered, case-insensitive settings addressed by dotted keys.

    Values set explicitly win over values from the loaded configuration,
    which win over defaults.
    """

    def __init__(self, config: Mapping[str, Any] | None = None,
                 defaults: Mapping[str, Any] | None = None) -> None:
        self._overrides: dict[str, Any] = {}
        self._config: dict[str, Any] = _normalize(config or {})
        self._defaults: dict[str, Any] = {}
        self._aliases: dict[str, str] = {}
        for key, value in (defaults or {}).items():
            self.set_default(key, value)

    def __repr__(self) -> str:
        return f"Settings({self.all_settings()!r})"

    def _real_key(self, key: str) -> str:
        key = key.lower()
        seen = set()
        while key in self._aliases and key not in seen:
            seen.add(key)
            key = self._aliases[key]
        return key

    def _find(self, key: str) -> Any:
        parts = _split(self._real_key(key))
        for layer in (self._overrides, self._config, self._defaults):
            value = _lookup(layer, parts)
            if value is not _MISSING:
                return value
        return _MISSING

    def get(self, key: str) -> Any:
        """Return the value for a key, or None when it is not set anywhere."""
        value = self._find(key)
        return None if value is _MISSING else value

    def set(self, key: str, value: Any) -> None:
        """Set a value that overrides configuration and defaults."""
        _store(self._overrides, _split(self._real_key(key)), value)

    def set_default(self, key: str, value: Any) -> None:
        """Set the value used when nothing else provides the key."""
        _store(self._defaults, _split(self._real_key(key)), value)

    def is_set(self, key: str) -> bool:
        return self.get(key) is not None

    def all_keys(self) -> list[str]:
        """Return every leaf key across all layers, sorted."""
        keys: set[str] = set()
        for layer in (self._overrides, self._config, self._defaults):
            keys.update(_leaf_keys(layer))
        return sorted(keys)

    def all_settings(self) -> dict[str, Any]:
        """Return the effective settings as a nested dictionary."""
        result: dict[str, Any] = {}
        for key in self.all_keys():
            _store(result, key.split("."), self.get(key))
        return result

    def register_alias(self, alias: str, key: str) -> None:
        """Make ``alias`` refer to the same value as ``key``."""
        alias = alias.lower()
        key = key.lower()
        if alias == key or self._real_key(key) == alias:
            return
        self._aliases[alias] = key

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip() in _TRUE_STRINGS
        if isinstance(value, (int, float)):
            return value != 0
        return False

    def get_int(self, key: str) -> int:
        value = self.get(key)
        if isinstance(value, (bool, int)):
            return int(value)
        if isinstance(value, float):
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip(), 0)
            except ValueError:
                return 0
        return 0

    def get_float(self, key: str) -> float:
        value = self.get(key)
        if isinstance(value, (bool, int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return 0.0
        return 0.0

    def get_string(self, key: str) -> str:
        return _to_string(self.get(key))

    def get_string_slice(self, key: str) -> list[str]:
        value = self.get(key)
        if isinstance(value, str):
            return value.split()
        if isinstance(value, (list, tuple)):
            return [_to_string(item) for item in value]
        return []

    def get_string_map(self, key: str) -> dict[str, Any]:
        value = self.get(key)
        if isinstance(value, Mapping):
            return {str(k): v for k, v in value.items()}
        return {}

    def sub(self, key: str) -> Settings | None:
        """Return the settings nested under ``key``, or None if it is not a map."""
        value = self.get(key)
        if isinstance(value, Mapping):
            return Settings(config=value)
        return None


@dataclass(frozen=True)
class PluginStartupContext:
    """Data handed to each plugin's start function."""

    settings: Settings