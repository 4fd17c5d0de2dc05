"""Synthetic traffic source for demos and local testing."""

from __future__ import annotations

import random
import time
from collections.abc import Iterator
from typing import Any

from txa.aggregation.models import (
    FAILED_RESULT,
    MO_MESSAGE_TYPE,
    MT_MESSAGE_TYPE,
    Record,
    TxLog,
)
from txa.clock import Clock, SystemClock
from txa.collectors.base import BaseSource

DEFAULT_URIS = ["coap://10.255.8.101/mt", "coap://10.255.8.102/mt"]


class SampleSource(BaseSource):
    """Generates NIDD-style traffic from a fleet of simulated devices.

    Useful for demos without a real event stream. Config keys:
    - devices: number of device ids ("01".."NN", default 20)
    - rate_per_second: events per second across the fleet (default 50)
    - mo_ratio / mt_ratio: message-type mix (default 0.5 / 0.45)
    - error_ratio: share of FAILED results (default 0.01)
    - big_ratio / big_size: share and size of oversized payloads
    - limit: stop after this many records (default unbounded)
    - realtime: pace records to rate_per_second (default True)
    - seed: random seed
    """

    def __init__(self, config: dict[str, Any] | None = None, clock: Clock | None = None):
        super().__init__(config)
        self.clock = clock or SystemClock()
        self._devices = int(self.config.get("devices", 20))
        self._rate = float(self.config.get("rate_per_second", 50))
        self._mo_ratio = float(self.config.get("mo_ratio", 0.5))
        self._mt_ratio = float(self.config.get("mt_ratio", 0.45))
        self._error_ratio = float(self.config.get("error_ratio", 0.01))
        self._big_ratio = float(self.config.get("big_ratio", 0.01))
        self._big_size = int(self.config.get("big_size", 2048))
        self._limit = self.config.get("limit")
        self._realtime = bool(self.config.get("realtime", True))
        self._uris = list(self.config.get("uris", DEFAULT_URIS))
        self._random = random.Random(self.config.get("seed"))
        self._stopped = False

    @property
    def source_name(self) -> str:
        return "sample"

    def stop(self) -> None:
        self._stopped = True

    def make_event(self, timestamp: int) -> TxLog:
        """Draw one synthetic event."""
        rnd = self._random
        draw = rnd.random()
        if draw < self._mo_ratio:
            message_type = MO_MESSAGE_TYPE
        elif draw < self._mo_ratio + self._mt_ratio:
            message_type = MT_MESSAGE_TYPE
        else:
            message_type = "NIDD-CONFIG"

        big = rnd.random() < self._big_ratio
        return TxLog(
            device_id=f"{rnd.randint(1, self._devices):02d}",
            uri=rnd.choice(self._uris),
            message_type=message_type,
            result=FAILED_RESULT if rnd.random() < self._error_ratio else "SUCCESS",
            payload_size=self._big_size if big else rnd.randint(16, 512),
            timestamp=timestamp,
        )

    def records(self) -> Iterator[Record]:
        produced = 0
        interval = 1.0 / self._rate if self._rate > 0 else 0.0
        while not self._stopped:
            if self._limit is not None and produced >= int(self._limit):
                return
            timestamp = self.clock.now_ms()
            event = self.make_event(timestamp)
            yield Record(key=event.device_id, value=event, timestamp=timestamp)
            produced += 1
            if self._realtime and interval:
                time.sleep(interval)
