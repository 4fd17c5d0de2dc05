"""Anomaly evaluation: periodic sweep, traffic-mix predictor and alarms."""

from txa.detection.alarms import Alarm, AlarmKind, AlarmSink
from txa.detection.evaluator import (
    EvaluationResult,
    PayloadSummary,
    PeriodicEvaluator,
    TrafficRates,
    compute_rates,
    normalize_rate,
)
from txa.detection.predictor import LEARNING_LOSS, NORMAL_LOSS_BOUND, Predictor

__all__ = [
    "Alarm",
    "AlarmKind",
    "AlarmSink",
    "EvaluationResult",
    "PayloadSummary",
    "PeriodicEvaluator",
    "TrafficRates",
    "compute_rates",
    "normalize_rate",
    "Predictor",
    "LEARNING_LOSS",
    "NORMAL_LOSS_BOUND",
]
