"""Source reading records from a JSON-lines file or stdin."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError

from txa.aggregation.models import Record, TxLog
from txa.clock import Clock, SystemClock
from txa.collectors.base import BaseSource

logger = logging.getLogger("txa.collectors.jsonl")


class JsonLinesSource(BaseSource):
    """Reads one record per line.

    Each line is either an envelope ``{"key": ..., "value": {...} | null,
    "timestamp": ms}`` or a bare TxLog object, in which case the key is its
    ``deviceId``. The record timestamp falls back to the event's own
    ``timestamp`` and then to the current time. Malformed lines are
    skipped with a warning.
    """

    def __init__(
        self,
        path: str | Path,
        config: dict[str, Any] | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(config)
        self.path = str(path)
        self.clock = clock or SystemClock()
        self.skipped = 0
        self._stopped = False

    @property
    def source_name(self) -> str:
        return "jsonl"

    def records(self) -> Iterator[Record]:
        if self.path == "-":
            yield from self._read(sys.stdin, "<stdin>")
            return
        with open(self.path, encoding="utf-8") as f:
            yield from self._read(f, self.path)

    def stop(self) -> None:
        self._stopped = True

    def _read(self, stream: IO[str], name: str) -> Iterator[Record]:
        for lineno, line in enumerate(stream, start=1):
            if self._stopped:
                return
            line = line.strip()
            if not line:
                continue
            try:
                yield self.parse_line(line)
            except (ValueError, ValidationError) as e:
                # Skip malformed records but keep the stream going
                self.skipped += 1
                logger.warning("Skipping malformed record at %s:%d: %s", name, lineno, e)

    def parse_line(self, line: str) -> Record:
        """Parse one JSON line into a Record."""
        raw = json.loads(line)
        if not isinstance(raw, dict):
            raise ValueError("record must be a JSON object")

        if "value" in raw:
            value = None if raw["value"] is None else TxLog.model_validate(raw["value"])
            key = raw.get("key")
        else:
            value = TxLog.model_validate(raw)
            key = value.device_id

        timestamp = raw.get("timestamp")
        if timestamp is None and value is not None:
            timestamp = value.timestamp
        if timestamp is None:
            timestamp = self.clock.now_ms()

        return Record(key=key, value=value, timestamp=int(timestamp))
