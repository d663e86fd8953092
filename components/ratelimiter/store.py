from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

class StateStore:
    """Port interface for a key-value atomic update store."""

    def update(self, key: str, fn: Callable[[Optional[dict]], dict]) -> dict:
        """Atomically read-modify-write the value for key and return the new value."""
        raise NotImplementedError

    def purge(self, predicate: Callable[[dict], bool]) -> int:
        """Drop every entry whose value matches; returns how many were removed."""
        raise NotImplementedError


class InMemoryStore(StateStore):
    """Thread-safe in-memory store with coarse-grained lock (single process)."""

    def __init__(self):
        self._data: Dict[str, dict] = {}
        self._lock = threading.RLock()

    def update(self, key: str, fn):
        with self._lock:
            new_value = fn(self._data.get(key))
            self._data[key] = new_value
            return new_value

    def purge(self, predicate) -> int:
        with self._lock:
            stale = [k for k, v in self._data.items() if predicate(v)]
            for k in stale:
                del self._data[k]
            return len(stale)
