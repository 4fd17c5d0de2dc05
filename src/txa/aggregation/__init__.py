"""Event models, window assignment and the two aggregation pipelines."""

from txa.aggregation.models import PayloadCount, Record, TxLog, Window
from txa.aggregation.pipelines import (
    PROPORTION_STORE,
    URI_COUNT_STORE,
    AggregationPipeline,
    DevicePayloadPipeline,
    UriCountPipeline,
)
from txa.aggregation.windows import WindowAssigner

__all__ = [
    "PayloadCount",
    "Record",
    "TxLog",
    "Window",
    "WindowAssigner",
    "AggregationPipeline",
    "DevicePayloadPipeline",
    "UriCountPipeline",
    "PROPORTION_STORE",
    "URI_COUNT_STORE",
]
