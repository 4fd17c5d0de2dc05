"""Abstract base class for ingress record sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from txa.aggregation.models import Record


class BaseSource(ABC):
    """Abstract source interface for the transaction event stream.

    Sources yield keyed records in delivery order. A record whose value is
    None is a tombstone. Delivery is at-least-once at best; sources do
    not deduplicate.
    """

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = config or {}

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return the name of this source (e.g., 'jsonl', 'sample')."""
        ...

    @abstractmethod
    def records(self) -> Iterator[Record]:
        """Yield records until the source is exhausted or stopped."""
        ...

    def stop(self) -> None:
        """Ask an unbounded source to stop yielding."""
