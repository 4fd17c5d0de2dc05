"""Logging configuration for txa."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Client libraries that log every request at DEBUG/INFO
NOISY_LOGGERS = ("pymongo", "urllib3")


def setup_logging(level: str | None = None, alarm_file: str | None = None) -> None:
    """Configure logging for the analyzer.

    Evaluation sweeps log on ``txa.timer`` and alarms on ``txa.alarm`` so
    they can be routed separately. When ``alarm_file`` is given, alarm
    lines are also appended to that file.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
               Falls back to TXA_LOG_LEVEL env var, then INFO.
        alarm_file: Optional path for a dedicated alarm log.
    """
    log_level = getattr(
        logging, (level or os.environ.get("TXA_LOG_LEVEL", "INFO")).upper(), logging.INFO,
    )
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stderr,
    )

    if log_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    alarm_file = alarm_file or os.environ.get("TXA_ALARM_LOG_FILE")
    if alarm_file:
        handler = logging.FileHandler(alarm_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        alarm_logger = logging.getLogger("txa.alarm")
        alarm_logger.addHandler(handler)
        alarm_logger.setLevel(logging.INFO)
