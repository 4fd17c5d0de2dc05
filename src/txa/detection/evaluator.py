"""Periodic sweep over recently closed windows raising threshold and model alarms."""

from __future__ import annotations

import logging
import math
from typing import Protocol

from pydantic import BaseModel, Field

from txa.aggregation.models import PayloadCount, Window
from txa.aggregation.pipelines import PROPORTION_STORE, URI_COUNT_STORE
from txa.clock import Clock
from txa.config import AnalyzerConfig
from txa.detection.alarms import Alarm, AlarmKind, AlarmSink
from txa.errors import StoreNotReadyError
from txa.storage.base import WindowStore

timer_logger = logging.getLogger("txa.timer")

# Bounds of the per-second MO rate used to rescale the busiest device
MIN_RATE = 0.1
MAX_RATE = 2.0


class MixPredictor(Protocol):
    def predict(
        self, mt_rate: float, mo_rate: float, error_rate: float, normalized_max: float,
    ) -> bool: ...


class PayloadSummary(BaseModel):
    """Pipeline-wide sums of the device aggregates in the evaluated range."""

    total_count: int = 0
    mt_count: int = 0
    mo_count: int = 0
    error_count: int = 0
    big_count: int = 0
    mo_count_max: int = 0
    devices: int = 0
    window: Window | None = None

    def add(self, count: PayloadCount, window: Window) -> None:
        self.total_count += count.total_count
        self.mt_count += count.mt_count
        self.mo_count += count.mo_count
        self.error_count += count.error_count
        self.big_count += count.big_count
        self.mo_count_max = max(self.mo_count_max, count.mo_count)
        self.devices += 1
        self.window = window


class TrafficRates(BaseModel):
    """Traffic-mix ratios fed to the threshold rules and the predictor."""

    mt_rate: float
    mo_rate: float
    error_rate: float
    big_payload_rate: float
    normalized_max: float

    @property
    def features(self) -> tuple[float, float, float, float]:
        return (self.mt_rate, self.mo_rate, self.error_rate, self.normalized_max)


class EvaluationResult(BaseModel):
    """Outcome of one evaluation tick."""

    time_from: int
    time_to: int
    summary: PayloadSummary
    rates: TrafficRates | None = None
    alarms: list[Alarm] = Field(default_factory=list)


def normalize_rate(rate: float) -> float:
    """Rescale a per-second rate onto roughly [0, 1]. Not clamped."""
    return (rate - MIN_RATE) / (MAX_RATE - MIN_RATE)


def compute_rates(summary: PayloadSummary) -> TrafficRates | None:
    """Derive traffic-mix ratios, or None when the range saw no traffic."""
    total = summary.total_count
    if total == 0:
        return None
    return TrafficRates(
        mt_rate=summary.mt_count / total,
        mo_rate=summary.mo_count / total,
        error_rate=summary.error_count / total,
        big_payload_rate=summary.big_count / total,
        normalized_max=normalize_rate(summary.mo_count_max / 60),
    )


class PeriodicEvaluator:
    """Stateless anomaly sweep run once per slide step.

    Each tick reads the most recently closed windows
    (``[now - S - W, now - W]``) from the window store and:

    1. raises a URI-rate alarm for every URI window at or above the
       transactions-per-minute threshold;
    2. folds all device aggregates into pipeline-wide counts;
    3. converts them into MT/MO/error/big-payload ratios plus the
       normalized peak per-device MO rate;
    4. raises an alarm when the predictor deems the mix abnormal, and
       another when the big-payload ratio reaches its threshold.

    A range with no traffic produces no ratio-based alarm. Any failure is
    logged and swallowed; the next tick starts from scratch.
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        store: WindowStore,
        predictor: MixPredictor,
        alarm_sink: AlarmSink,
        clock: Clock,
    ):
        self.config = config
        self.store = store
        self.predictor = predictor
        self.alarm_sink = alarm_sink
        self.clock = clock

    def tick(self) -> EvaluationResult | None:
        """Run one sweep. Never raises."""
        try:
            return self.evaluate(self.clock.now_ms())
        except StoreNotReadyError:
            timer_logger.debug("state store is not available yet.")
        except Exception as e:
            timer_logger.error("evaluation tick failed: %s", e, exc_info=True)
        return None

    def evaluate(self, now: int) -> EvaluationResult:
        """Run the sweep for wall-clock time ``now`` (epoch ms)."""
        if not self.store.has_store(PROPORTION_STORE):
            raise StoreNotReadyError(f"window store '{PROPORTION_STORE}' is not available yet")

        time_from, time_to = self.evaluation_range(now)
        alarms: list[Alarm] = []
        if self.store.has_store(URI_COUNT_STORE):
            alarms.extend(self._check_uri_rates(time_from, time_to))

        summary = self._reduce_payloads(time_from, time_to)
        rates = compute_rates(summary)
        window_label = summary.window.label if summary.window else "-"

        if rates is None:
            timer_logger.debug("no traffic in [%s], skipping ratio checks", window_label)
        else:
            alarms.extend(self._decide(summary, rates))

        return EvaluationResult(
            time_from=time_from,
            time_to=time_to,
            summary=summary,
            rates=rates,
            alarms=alarms,
        )

    def evaluation_range(self, now: int) -> tuple[int, int]:
        """Window-start range of the most recently closed windows."""
        time_from = now - self.config.step_ms - self.config.window_ms
        time_to = now - self.config.window_ms
        return time_from, time_to

    def _check_uri_rates(self, time_from: int, time_to: int) -> list[Alarm]:
        alarms: list[Alarm] = []
        entries = self.store.range(
            URI_COUNT_STORE,
            self.config.uri_key_from,
            self.config.uri_key_to,
            time_from,
            time_to,
        )
        for uri, window, count in entries:
            tpm = count / self.config.window_minutes
            if tpm >= self.config.tpm_threshold:
                alarm = self.alarm_sink.raise_alarm(
                    AlarmKind.URI_RATE,
                    "uri[{}] tpm[{}] reach threshold[{}] in [{}]",
                    uri, tpm, self.config.tpm_threshold, window.label,
                    window=window,
                )
                if alarm is not None:
                    alarms.append(alarm)
        return alarms

    def _reduce_payloads(self, time_from: int, time_to: int) -> PayloadSummary:
        summary = PayloadSummary()
        entries = self.store.range(
            PROPORTION_STORE,
            self.config.device_key_from,
            self.config.device_key_to,
            time_from,
            time_to,
        )
        for device, window, count in entries:
            timer_logger.debug(
                "device[%s] totalCount[%d], mtCount[%d], moCount[%d]",
                device, count.total_count, count.mt_count, count.mo_count,
            )
            summary.add(count, window)
        return summary

    def _decide(self, summary: PayloadSummary, rates: TrafficRates) -> list[Alarm]:
        alarms: list[Alarm] = []
        window = summary.window
        window_label = window.label if window else "-"

        timer_logger.info(
            "mtRate[%s], moRate[%s], errorRate[%s], normalizedMax[%s] in [%s]",
            rates.mt_rate, rates.mo_rate, rates.error_rate, rates.normalized_max, window_label,
        )
        if not all(math.isfinite(f) for f in rates.features):
            timer_logger.warning("non-finite features %s, skipping prediction", rates.features)
        elif not self.predictor.predict(*rates.features):
            alarm = self.alarm_sink.raise_alarm(
                AlarmKind.ABNORMAL_PATTERN,
                "abnormal mo pattern detected in [{}]",
                window_label,
                window=window,
            )
            if alarm is not None:
                alarms.append(alarm)

        timer_logger.info(
            "totalCount[%d], bigPayload[%d] in [%s]",
            summary.total_count, summary.big_count, window_label,
        )
        if rates.big_payload_rate >= self.config.big_size_proportion_threshold:
            alarm = self.alarm_sink.raise_alarm(
                AlarmKind.BIG_PAYLOAD,
                "big payload rate [{}] reach threshold[{}] in [{}]",
                rates.big_payload_rate,
                self.config.big_size_proportion_threshold,
                window_label,
                window=window,
            )
            if alarm is not None:
                alarms.append(alarm)
        return alarms
