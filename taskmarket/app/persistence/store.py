"""Key-value persistence contract and an in-memory implementation."""
from __future__ import annotations

import copy
import json
from threading import Lock
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Union

JSONValue = Union[Dict[str, Any], list]


class KeyValueStore(Protocol):
    """Durable surface: reads return the last written value, writes are atomic per call."""

    def get(self, key: str) -> Optional[JSONValue]:
        ...

    def set(self, key: str, value: JSONValue) -> None:
        ...

    def set_many(self, entries: Mapping[str, JSONValue]) -> None:
        """Write every entry or none of them."""
        ...

    def keys(self, prefix: str = "") -> Iterable[str]:
        ...


class InMemoryKeyValueStore:
    """Simple in-memory store suitable for tests and local development."""

    def __init__(self, initial: Optional[Dict[str, JSONValue]] = None) -> None:
        self._entries: Dict[str, str] = {}
        self._lock = Lock()
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[JSONValue]:
        with self._lock:
            raw = self._entries.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: JSONValue) -> None:
        # Values are stored serialized so callers never share mutable state.
        raw = json.dumps(copy.deepcopy(value), sort_keys=True)
        with self._lock:
            self._entries[key] = raw

    def set_many(self, entries: Mapping[str, JSONValue]) -> None:
        raw = {key: json.dumps(copy.deepcopy(value), sort_keys=True) for key, value in entries.items()}
        with self._lock:
            self._entries.update(raw)

    def keys(self, prefix: str = "") -> Iterable[str]:
        with self._lock:
            return sorted(key for key in self._entries if key.startswith(prefix))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
