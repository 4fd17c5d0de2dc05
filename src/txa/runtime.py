"""Process runtime: evaluation timer, ingestion entry point and shutdown sequence."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable

from txa.aggregation.models import PayloadCount, Record
from txa.aggregation.pipelines import (
    PROPORTION_STORE,
    URI_COUNT_STORE,
    AggregationPipeline,
    DevicePayloadPipeline,
    UriCountPipeline,
)
from txa.aggregation.windows import WindowAssigner
from txa.clock import Clock, SystemClock
from txa.config import AnalyzerConfig
from txa.detection.alarms import AlarmSink
from txa.detection.evaluator import EvaluationResult, PeriodicEvaluator
from txa.detection.predictor import Predictor
from txa.storage.base import WindowStore
from txa.storage.memory import InMemoryWindowStore

logger = logging.getLogger("txa.runtime")


class PeriodicTask:
    """Runs ``fn`` every ``interval`` seconds on one daemon thread.

    Runs never overlap: a run that overshoots the interval pushes the
    next one back instead of queueing extra runs. Exceptions from ``fn``
    are logged and the schedule continues.
    """

    def __init__(
        self,
        interval: float,
        fn: Callable[[], object],
        name: str = "periodic-task",
        initial_delay: float = 0.0,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.fn = fn
        self.name = name
        self.initial_delay = initial_delay
        self.runs = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 10.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self) -> None:
        next_run = time.monotonic() + self.initial_delay
        while not self._stop.wait(max(0.0, next_run - time.monotonic())):
            try:
                self.fn()
            except Exception:
                logger.exception("%s: scheduled run failed", self.name)
            self.runs += 1
            next_run = max(next_run + self.interval, time.monotonic())


def create_store(config: AnalyzerConfig) -> WindowStore:
    """Build the window store selected by ``store.backend``."""
    if config.store_backend == "mongodb":
        from txa.storage.mongo import MongoWindowStore

        return MongoWindowStore(
            config.retention_ms,
            config.mongodb,
            decoders={
                PROPORTION_STORE: PayloadCount.from_document,
                URI_COUNT_STORE: int,
            },
        )
    return InMemoryWindowStore(config.retention_ms)


class Analyzer:
    """Wires pipelines, store, predictor and evaluator into one process.

    Lifecycle: ``start()`` loads the model and starts the evaluation timer;
    ``process()``/``ingest()`` feed records; ``shutdown()`` stops the timer,
    waits for the record in flight, then releases the predictor and store.
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        predictor: Predictor,
        store: WindowStore | None = None,
        alarm_sink: AlarmSink | None = None,
        clock: Clock | None = None,
    ):
        self.config = config
        self.predictor = predictor
        self.clock = clock or SystemClock()
        self.store = store or create_store(config)
        self.alarm_sink = alarm_sink or AlarmSink()
        self.assigner = WindowAssigner(config.window_ms, config.step_ms)
        self.pipelines: list[AggregationPipeline] = [
            DevicePayloadPipeline(self.store, self.assigner, config.big_size_threshold),
            UriCountPipeline(self.store, self.assigner),
        ]
        self.evaluator = PeriodicEvaluator(
            config, self.store, predictor, self.alarm_sink, self.clock,
        )
        self.result_listeners: list[Callable[[EvaluationResult], None]] = []
        self._timer = PeriodicTask(config.step_seconds, self.tick, name="txa-evaluator")
        self._ingest_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._closed = False

    def start(self) -> None:
        """Load the model and start the evaluation timer.

        Raises:
            ModelLoadError: The predictor artifact cannot be loaded.
        """
        if not self.predictor.loaded:
            self.predictor.init()
        self._timer.start()
        logger.info(
            "Analyzer started: window=%ss step=%ss store=%s",
            self.config.window_seconds, self.config.step_seconds, type(self.store).__name__,
        )

    def process(self, record: Record) -> None:
        with self._ingest_lock:
            for pipeline in self.pipelines:
                pipeline.process(record)

    def ingest(self, records: Iterable[Record]) -> int:
        """Feed records until the iterable ends or the analyzer shuts down."""
        count = 0
        for record in records:
            if self._closed:
                break
            self.process(record)
            count += 1
        return count

    def tick(self) -> EvaluationResult | None:
        """One timer run: evaluate, notify listeners, evict expired windows.

        Runs are serialized: a direct call waits for a timer run in progress.
        """
        with self._tick_lock:
            result = self.evaluator.tick()
            if result is not None:
                for listener in self.result_listeners:
                    try:
                        listener(result)
                    except Exception:
                        logger.exception("Evaluation listener failed")
            try:
                self.store.evict_expired(self.clock.now_ms())
            except Exception as e:
                logger.warning("Window eviction failed: %s", e)
            return result

    def stop_timer(self) -> None:
        """Stop scheduled evaluation, waiting for a run in progress."""
        self._timer.stop()

    def shutdown(self) -> None:
        """Stop the timer, drain ingestion, release the predictor and store."""
        if self._closed:
            return
        self._closed = True
        self.stop_timer()
        with self._ingest_lock:
            pass
        self.predictor.close()
        self.store.close()
        logger.info(
            "Analyzer stopped: %s",
            ", ".join(
                f"{p.store_name}[processed={p.processed} dropped={p.dropped} too_old={p.too_old}]"
                for p in self.pipelines
            ),
        )

    def __enter__(self) -> Analyzer:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
