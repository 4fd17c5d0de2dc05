"""Transaction traffic analyzer: windowed aggregation and anomaly alarms."""

__version__ = "0.3.0"
