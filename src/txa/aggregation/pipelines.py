"""Windowed aggregation pipelines writing per-key aggregates to a window store."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from txa.aggregation.models import PayloadCount, Record, TxLog
from txa.aggregation.windows import WindowAssigner

if TYPE_CHECKING:
    from txa.storage.base import WindowStore

logger = logging.getLogger("txa.pipeline")

PROPORTION_STORE = "Proportion"
URI_COUNT_STORE = "URICount"


class AggregationPipeline(ABC):
    """Abstract pipeline folding records into per-key window aggregates.

    For every record the pipeline extracts a routing key, assigns the
    record to the windows that are still open, and applies ``update`` to
    the current aggregate of each ``(key, window)``. There is no
    deduplication: a redelivered record is counted again.
    """

    def __init__(self, store: WindowStore, assigner: WindowAssigner):
        self.store = store
        self.assigner = assigner
        self.stream_time = -1
        self.processed = 0
        self.dropped = 0
        self.too_old = 0
        self.tombstones = 0

    @property
    @abstractmethod
    def store_name(self) -> str:
        """Name of the window store this pipeline materializes."""
        ...

    @abstractmethod
    def key_for(self, record: Record) -> str | None:
        """Routing key for a record, or None to drop it from this pipeline."""
        ...

    @abstractmethod
    def initial(self) -> Any:
        """Empty aggregate for a window seen for the first time."""
        ...

    @abstractmethod
    def update(self, key: str, event: TxLog | None, current: Any) -> Any | None:
        """Fold one event into ``current``.

        Returns:
            The new aggregate, or None to delete the aggregate.
        """
        ...

    def process(self, record: Record) -> bool:
        """Apply one record. Returns True when at least one window was updated."""
        self.stream_time = max(self.stream_time, record.timestamp)

        key = self.key_for(record)
        if key is None:
            self.dropped += 1
            return False

        windows = self.assigner.live_windows(record.timestamp, self.stream_time)
        if not windows:
            self.too_old += 1
            logger.debug(
                "%s: skipping record for key=%s at %d, too old (stream time %d)",
                self.store_name, key, record.timestamp, self.stream_time,
            )
            return False

        if record.is_tombstone:
            self.tombstones += 1

        for window in windows:
            current = self.store.get(self.store_name, key, window)
            if current is None:
                current = self.initial()
            updated = self.update(key, record.value, current)
            if updated is None:
                self.store.delete(self.store_name, key, window)
            else:
                self.store.put(self.store_name, key, window, updated)

        self.processed += 1
        return True


class DevicePayloadPipeline(AggregationPipeline):
    """Per-device traffic mix: totals, MO/MT split, failures and big payloads."""

    def __init__(
        self,
        store: WindowStore,
        assigner: WindowAssigner,
        big_size_threshold: int,
    ):
        super().__init__(store, assigner)
        self.big_size_threshold = big_size_threshold

    @property
    def store_name(self) -> str:
        return PROPORTION_STORE

    def key_for(self, record: Record) -> str | None:
        # Tombstones carry no device id; they clear the aggregate of the record key
        if record.value is None:
            return record.key
        return record.value.device_id

    def initial(self) -> PayloadCount:
        return PayloadCount()

    def update(
        self, key: str, event: TxLog | None, current: PayloadCount,
    ) -> PayloadCount | None:
        logger.debug("aggregate payload count: key=%s, value=%s, payloadCount=%s", key, event, current)
        if event is None:
            return None

        current.device_id = key
        current.increase_total_count()
        if event.payload_size > self.big_size_threshold:
            current.increase_big_count()
        if event.is_mo:
            current.increase_mo_count()
        if event.is_mt:
            current.increase_mt_count()
        if event.is_failed:
            current.increase_error_count()
        return current


class UriCountPipeline(AggregationPipeline):
    """Per-URI transaction count."""

    @property
    def store_name(self) -> str:
        return URI_COUNT_STORE

    def key_for(self, record: Record) -> str | None:
        return record.value.uri if record.value is not None else None

    def initial(self) -> int:
        return 0

    def update(self, key: str, event: TxLog | None, current: int) -> int | None:
        if event is None:
            return None
        return current + 1

