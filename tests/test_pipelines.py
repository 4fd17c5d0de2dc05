"""Unit tests for the aggregation pipelines."""

from __future__ import annotations

import math

from txa.aggregation.models import PayloadCount, Record, TxLog, Window
from txa.aggregation.pipelines import (
    PROPORTION_STORE,
    URI_COUNT_STORE,
    DevicePayloadPipeline,
    UriCountPipeline,
)
from txa.aggregation.windows import WindowAssigner
from txa.clock import ManualClock
from txa.config import parse_config
from txa.detection.alarms import AlarmKind, AlarmSink
from txa.detection.evaluator import PeriodicEvaluator
from txa.storage.memory import InMemoryWindowStore

URI = "coap://10.255.8.101/mt"
FIRST_WINDOW = Window(start=0, end=60_000)


def _make_record(
    timestamp: int = 1_000,
    device_id: str | None = "01",
    uri: str | None = URI,
    message_type: str | None = "NIDD-MO",
    result: str | None = "SUCCESS",
    payload_size: int = 100,
) -> Record:
    """Helper to create a keyed record."""
    event = TxLog(
        device_id=device_id,
        uri=uri,
        message_type=message_type,
        result=result,
        payload_size=payload_size,
    )
    return Record(key=device_id, value=event, timestamp=timestamp)


def _make_pipelines(step_ms: int = 60_000):
    store = InMemoryWindowStore(retention_ms=120_000)
    assigner = WindowAssigner(size_ms=60_000, step_ms=step_ms)
    device = DevicePayloadPipeline(store, assigner, big_size_threshold=1024)
    uri = UriCountPipeline(store, assigner)
    return store, device, uri


class _NormalPredictor:
    def predict(self, *features):
        return True


class TestDevicePayloadPipeline:
    def test_counts_are_independent(self):
        store, device, _ = _make_pipelines()
        device.process(_make_record(message_type="NIDD-MO", result="FAILED", payload_size=2048))

        count = store.get(PROPORTION_STORE, "01", FIRST_WINDOW)
        assert count.total_count == 1
        assert count.mo_count == 1
        assert count.mt_count == 0
        assert count.error_count == 1
        assert count.big_count == 1
        assert count.device_id == "01"

    def test_payload_exactly_at_threshold_is_not_big(self):
        store, device, _ = _make_pipelines()
        device.process(_make_record(payload_size=1024))
        assert store.get(PROPORTION_STORE, "01", FIRST_WINDOW).big_count == 0

    def test_other_message_types_only_count_in_total(self):
        store, device, _ = _make_pipelines()
        device.process(_make_record(message_type="NIDD-CONFIG"))
        device.process(_make_record(message_type="nidd-mo"))
        count = store.get(PROPORTION_STORE, "01", FIRST_WINDOW)
        assert count.total_count == 2
        assert count.mo_count == 0
        assert count.mt_count == 0

    def test_counters_never_decrease(self):
        store, device, _ = _make_pipelines()
        previous = PayloadCount()
        types = ["NIDD-MO", "NIDD-MT", None, "NIDD-MO"]
        for i in range(40):
            device.process(_make_record(
                timestamp=1_000 + i,
                message_type=types[i % 4],
                result="FAILED" if i % 7 == 0 else "SUCCESS",
                payload_size=4096 if i % 5 == 0 else 10,
            ))
            current = store.get(PROPORTION_STORE, "01", FIRST_WINDOW)
            for field in ("total_count", "mt_count", "mo_count", "error_count", "big_count"):
                assert getattr(current, field) >= getattr(previous, field)
            assert current.mt_count + current.mo_count <= current.total_count
            previous = current.model_copy()

    def test_event_updates_every_overlapping_window(self):
        store, device, _ = _make_pipelines(step_ms=30_000)
        device.process(_make_record(timestamp=45_000))
        assert store.get(PROPORTION_STORE, "01", Window(start=0, end=60_000)).total_count == 1
        assert store.get(PROPORTION_STORE, "01", Window(start=30_000, end=90_000)).total_count == 1

    def test_tombstone_deletes_aggregate(self):
        store, device, _ = _make_pipelines()
        device.process(_make_record(timestamp=1_000))
        device.process(Record(key="01", value=None, timestamp=2_000))

        assert store.get(PROPORTION_STORE, "01", FIRST_WINDOW) is None
        assert device.tombstones == 1

    def test_missing_device_id_is_dropped(self):
        store, device, _ = _make_pipelines()
        assert device.process(_make_record(device_id=None)) is False
        assert device.dropped == 1
        assert not store.has_store(PROPORTION_STORE)

    def test_too_old_event_is_skipped(self):
        store, device, _ = _make_pipelines()
        device.process(_make_record(timestamp=200_000))
        assert device.process(_make_record(timestamp=1_000)) is False

        assert device.too_old == 1
        assert store.get(PROPORTION_STORE, "01", FIRST_WINDOW) is None

    def test_late_event_within_retention_is_accepted(self):
        store, device, _ = _make_pipelines()
        device.process(_make_record(timestamp=110_000))
        assert device.process(_make_record(timestamp=1_000)) is True
        assert store.get(PROPORTION_STORE, "01", FIRST_WINDOW).total_count == 1

    def test_redelivered_event_is_counted_twice(self):
        store, device, _ = _make_pipelines()
        record = _make_record()
        device.process(record)
        device.process(record)
        assert store.get(PROPORTION_STORE, "01", FIRST_WINDOW).total_count == 2


class TestUriCountPipeline:
    def test_counts_per_uri(self):
        store, _, uri = _make_pipelines()
        for i in range(3):
            uri.process(_make_record(timestamp=1_000 + i, device_id=f"{i:02d}"))
        uri.process(_make_record(uri="coap://10.255.8.102/mt"))

        assert store.get(URI_COUNT_STORE, URI, FIRST_WINDOW) == 3
        assert store.get(URI_COUNT_STORE, "coap://10.255.8.102/mt", FIRST_WINDOW) == 1

    def test_tombstone_has_no_uri_and_is_dropped(self):
        _, _, uri = _make_pipelines()
        assert uri.process(Record(key="01", value=None, timestamp=1_000)) is False
        assert uri.dropped == 1

    def test_missing_uri_is_dropped(self):
        store, _, uri = _make_pipelines()
        uri.process(_make_record(uri=None))
        assert uri.dropped == 1
        assert not store.has_store(URI_COUNT_STORE)


def _ingest_thousand_events():
    """400 MT, 400 MO, 200 other; 20 FAILED and 50 big payloads, one device."""
    store, device, uri = _make_pipelines()
    for i in range(1000):
        if i < 400:
            message_type = "NIDD-MT"
        elif i < 800:
            message_type = "NIDD-MO"
        else:
            message_type = "NIDD-CONFIG"
        record = _make_record(
            timestamp=1_000 + i * 10,
            message_type=message_type,
            result="FAILED" if i % 50 == 0 else "SUCCESS",
            payload_size=2048 if i % 20 == 0 else 100,
        )
        device.process(record)
        uri.process(record)
    return store, device


class TestThousandEventWindow:
    def test_counts_and_rates(self):
        store, device = _ingest_thousand_events()
        count = store.get(PROPORTION_STORE, "01", FIRST_WINDOW)
        assert count.total_count == 1000
        assert count.mt_count == 400
        assert count.mo_count == 400
        assert count.error_count == 20
        assert count.big_count == 50
        assert count.mt_rate == 0.4
        assert count.mo_rate == 0.4
        assert count.error_rate == 0.02
        assert count.big_rate == 0.05
        assert store.get(URI_COUNT_STORE, URI, FIRST_WINDOW) == 1000
        assert device.processed == 1000

    def test_evaluator_raises_big_payload_alarm(self):
        store, _ = _ingest_thousand_events()
        config = parse_config({
            "big.size.threshod": 1024,
            "big.size.proportion.threshod": 0.03,
            "time.window.in.second": 60,
            "time.window.step.in.second": 60,
            "tx.per.minute.threshod": 5000,
        })
        evaluator = PeriodicEvaluator(
            config, store, _NormalPredictor(), AlarmSink(), ManualClock(120_000),
        )

        result = evaluator.tick()

        assert result.rates.big_payload_rate == 0.05
        assert [a.kind for a in result.alarms] == [AlarmKind.BIG_PAYLOAD]
        assert result.alarms[0].args[0] == 0.05
        assert result.alarms[0].message == (
            "big payload rate [0.05] reach threshold[0.03] in [00:00:00->00:01:00]"
        )


class TestPayloadCount:
    def test_rates_are_nan_without_traffic(self):
        count = PayloadCount(device_id="01")
        assert math.isnan(count.mt_rate)
        assert math.isnan(count.big_rate)

    def test_from_document(self):
        count = PayloadCount.from_document({"device_id": "07", "total_count": 4, "mo_count": 3})
        assert count.device_id == "07"
        assert count.mo_rate == 0.75
