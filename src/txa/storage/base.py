"""Abstract base class for windowed key-value stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from txa.aggregation.models import Window

# (key, window, value) triple yielded by WindowStore.range()
WindowedEntry = tuple[str, Window, Any]


class WindowStore(ABC):
    """Store of per-key, per-window aggregates for named pipelines.

    Aggregation pipelines write through ``put``/``delete``; the periodic
    evaluator reads with ``range``. Entries older than the retention
    horizon are dropped by ``evict_expired``.
    """

    def __init__(self, retention_ms: int):
        self.retention_ms = retention_ms

    @abstractmethod
    def put(self, store_name: str, key: str, window: Window, value: Any) -> None:
        """Write the aggregate for ``(key, window)``."""
        ...

    @abstractmethod
    def get(self, store_name: str, key: str, window: Window) -> Any | None:
        """Return the aggregate for ``(key, window)`` or None when absent."""
        ...

    @abstractmethod
    def delete(self, store_name: str, key: str, window: Window) -> None:
        """Remove the aggregate for ``(key, window)`` if present."""
        ...

    @abstractmethod
    def range(
        self,
        store_name: str,
        key_from: str,
        key_to: str,
        time_from: int,
        time_to: int,
    ) -> Iterator[WindowedEntry]:
        """Iterate entries with ``key_from <= key <= key_to`` and a window
        start within ``[time_from, time_to]``.

        Raises:
            StoreNotReadyError: No window has been written to ``store_name`` yet.
        """
        ...

    @abstractmethod
    def has_store(self, store_name: str) -> bool:
        """Whether ``store_name`` has materialized (received a first write)."""
        ...

    @abstractmethod
    def evict_expired(self, now: int) -> int:
        """Drop windows whose start is older than ``now - retention_ms``.

        Returns:
            Number of evicted entries.
        """
        ...

    def close(self) -> None:
        """Release backend resources."""
