"""Alarm records and the fire-and-forget alarm sink."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, Field

from txa.aggregation.models import Window

alarm_logger = logging.getLogger("txa.alarm")


class AlarmKind(str, Enum):
    """Which rule raised an alarm."""

    URI_RATE = "uri_rate"
    ABNORMAL_PATTERN = "abnormal_pattern"
    BIG_PAYLOAD = "big_payload"


class Alarm(BaseModel):
    """A raised alarm with its formatted message and positional arguments."""

    kind: AlarmKind
    template: str
    args: list[Any] = Field(default_factory=list)
    message: str
    window: Window | None = None
    raised_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AlarmHandler(Protocol):
    def handle(self, alarm: Alarm) -> None: ...


class AlarmSink:
    """Formats alarms, logs them and forwards them to registered handlers.

    ``raise_alarm`` never raises: a bad template or a failing handler is
    logged and the evaluation sweep carries on.
    """

    def __init__(self, handlers: list[AlarmHandler] | None = None):
        self.handlers: list[AlarmHandler] = list(handlers or [])

    def add_handler(self, handler: AlarmHandler) -> None:
        self.handlers.append(handler)

    def raise_alarm(
        self,
        kind: AlarmKind,
        template: str,
        *args: Any,
        window: Window | None = None,
    ) -> Alarm | None:
        """Format ``template`` with ``{}`` placeholders and emit the alarm."""
        try:
            message = template.format(*args)
            alarm = Alarm(
                kind=kind,
                template=template,
                args=list(args),
                message=message,
                window=window,
            )
        except Exception:
            alarm_logger.exception("Failed to format alarm %r with args %r", template, args)
            return None

        alarm_logger.info("alarm: %s", alarm.message)

        for handler in self.handlers:
            try:
                handler.handle(alarm)
            except Exception:
                alarm_logger.exception(
                    "Alarm handler %s failed", type(handler).__name__,
                )
        return alarm
