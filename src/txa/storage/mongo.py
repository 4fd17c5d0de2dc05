"""MongoDB window store backend."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from txa.aggregation.models import Window
from txa.errors import StoreNotReadyError
from txa.storage.base import WindowedEntry, WindowStore

logger = logging.getLogger("txa.storage")


class MongoWindowStore(WindowStore):
    """Persistent window store using one MongoDB collection per pipeline.

    Each document holds one ``(key, window)`` aggregate. A TTL index on
    ``expire_at`` lets MongoDB drop windows past the retention horizon on
    its own; ``evict_expired`` removes them eagerly as well since the TTL
    monitor only runs once a minute.

    Documents:
    - key: routing key (device id or URI)
    - start / end: window bounds in epoch milliseconds
    - value: aggregate (model dump for pydantic models, raw otherwise)
    - expire_at: window start + retention, as a UTC datetime
    """

    def __init__(
        self,
        retention_ms: int,
        config: dict[str, Any] | None = None,
        decoders: dict[str, Callable[[Any], Any]] | None = None,
    ):
        super().__init__(retention_ms)
        config = config or {}
        self._uri = config.get("uri") or os.environ.get(
            "TXA_MONGO_URI", "mongodb://localhost:27017"
        )
        self._db_name = config.get("database") or os.environ.get(
            "TXA_MONGO_DB", "txa"
        )
        self._decoders = decoders or {}
        self._client: Any = None
        self._db: Any = None
        self._indexed: set[str] = set()

    def _connect(self) -> None:
        """Establish the MongoDB connection."""
        if self._client is not None:
            return

        from pymongo import MongoClient

        self._client = MongoClient(self._uri, serverSelectionTimeoutMS=5000)
        self._db = self._client[self._db_name]

    def _collection(self, store_name: str) -> Any:
        self._connect()
        collection = self._db[store_name]
        if store_name not in self._indexed:
            self._ensure_indexes(collection)
            self._indexed.add(store_name)
        return collection

    def _ensure_indexes(self, collection: Any) -> None:
        """Create the window-identity and TTL indexes."""
        collection.create_index([("key", 1), ("start", 1)], unique=True)
        collection.create_index("expire_at", expireAfterSeconds=0)

    def _expire_at(self, window: Window) -> datetime:
        return datetime.fromtimestamp(
            (window.start + self.retention_ms) / 1000, tz=timezone.utc,
        )

    def _decode(self, store_name: str, raw: Any) -> Any:
        decoder = self._decoders.get(store_name)
        return decoder(raw) if decoder else raw

    def put(self, store_name: str, key: str, window: Window, value: Any) -> None:
        encoded = value.model_dump() if isinstance(value, BaseModel) else value
        self._collection(store_name).update_one(
            {"key": key, "start": window.start},
            {"$set": {
                "end": window.end,
                "value": encoded,
                "expire_at": self._expire_at(window),
            }},
            upsert=True,
        )

    def get(self, store_name: str, key: str, window: Window) -> Any | None:
        doc = self._collection(store_name).find_one(
            {"key": key, "start": window.start}, {"_id": 0, "value": 1},
        )
        if doc is None:
            return None
        return self._decode(store_name, doc["value"])

    def delete(self, store_name: str, key: str, window: Window) -> None:
        self._collection(store_name).delete_one({"key": key, "start": window.start})

    def range(
        self,
        store_name: str,
        key_from: str,
        key_to: str,
        time_from: int,
        time_to: int,
    ) -> Iterator[WindowedEntry]:
        if not self.has_store(store_name):
            raise StoreNotReadyError(f"window store '{store_name}' is not available yet")

        cursor = self._collection(store_name).find(
            {
                "key": {"$gte": key_from, "$lte": key_to},
                "start": {"$gte": time_from, "$lte": time_to},
            },
            {"_id": 0},
        ).sort([("key", 1), ("start", 1)])
        return self._entries(store_name, cursor)

    def _entries(self, store_name: str, cursor: Any) -> Iterator[WindowedEntry]:
        for doc in cursor:
            window = Window(start=doc["start"], end=doc["end"])
            yield doc["key"], window, self._decode(store_name, doc["value"])

    def has_store(self, store_name: str) -> bool:
        self._connect()
        return store_name in self._db.list_collection_names()

    def evict_expired(self, now: int) -> int:
        self._connect()
        cutoff = now - self.retention_ms
        evicted = 0
        owned = set(self._decoders) | self._indexed
        for store_name in self._db.list_collection_names():
            if store_name not in owned:
                continue
            result = self._db[store_name].delete_many({"start": {"$lt": cutoff}})
            evicted += result.deleted_count
        if evicted:
            logger.debug("Evicted %d expired windows from MongoDB", evicted)
        return evicted

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            self._indexed.clear()
