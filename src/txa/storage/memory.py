"""In-process window store backed by a locked dictionary."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel

from txa.aggregation.models import Window
from txa.errors import StoreNotReadyError
from txa.storage.base import WindowedEntry, WindowStore

logger = logging.getLogger("txa.storage")


class InMemoryWindowStore(WindowStore):
    """Window store for a single analyzer process.

    Entries are keyed by ``(key, window.start)`` per store name. A lock
    serializes writers (aggregation) against readers (the evaluator
    thread). Model values are copied in and out, so ``range`` yields a
    consistent snapshot while ingestion keeps updating aggregates.
    """

    def __init__(self, retention_ms: int):
        super().__init__(retention_ms)
        self._lock = threading.RLock()
        self._stores: dict[str, dict[tuple[str, int], tuple[Window, Any]]] = {}

    def put(self, store_name: str, key: str, window: Window, value: Any) -> None:
        with self._lock:
            self._stores.setdefault(store_name, {})[(key, window.start)] = (window, _snapshot(value))

    def get(self, store_name: str, key: str, window: Window) -> Any | None:
        with self._lock:
            entry = self._stores.get(store_name, {}).get((key, window.start))
            return _snapshot(entry[1]) if entry else None

    def delete(self, store_name: str, key: str, window: Window) -> None:
        with self._lock:
            self._stores.get(store_name, {}).pop((key, window.start), None)

    def range(
        self,
        store_name: str,
        key_from: str,
        key_to: str,
        time_from: int,
        time_to: int,
    ) -> Iterator[WindowedEntry]:
        with self._lock:
            store = self._stores.get(store_name)
            if store is None:
                raise StoreNotReadyError(f"window store '{store_name}' is not available yet")
            snapshot = [
                (key, window, _snapshot(value))
                for (key, start), (window, value) in store.items()
                if key_from <= key <= key_to and time_from <= start <= time_to
            ]
        snapshot.sort(key=lambda entry: (entry[0], entry[1].start))
        return iter(snapshot)

    def has_store(self, store_name: str) -> bool:
        with self._lock:
            return store_name in self._stores

    def evict_expired(self, now: int) -> int:
        cutoff = now - self.retention_ms
        evicted = 0
        with self._lock:
            for store in self._stores.values():
                expired = [k for k, (window, _) in store.items() if window.start < cutoff]
                for k in expired:
                    del store[k]
                evicted += len(expired)
        if evicted:
            logger.debug("Evicted %d expired windows (cutoff %d)", evicted, cutoff)
        return evicted

    def __len__(self) -> int:
        with self._lock:
            return sum(len(store) for store in self._stores.values())


def _snapshot(value: Any) -> Any:
    # Stored models are never shared with callers
    return value.model_copy() if isinstance(value, BaseModel) else value
