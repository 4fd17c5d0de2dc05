"""Forwards alarms to an HTTP endpoint of the observability stack."""

from __future__ import annotations

import logging
from typing import Any

import requests

from txa.detection.alarms import Alarm

logger = logging.getLogger("txa.reporters.webhook")


class WebhookAlarmReporter:
    """POSTs each alarm as JSON to a webhook URL.

    Delivery is best effort: a failed request is logged and dropped.
    """

    def __init__(self, url: str, timeout: float = 5.0, headers: dict[str, str] | None = None):
        self.url = url
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if headers:
            self._session.headers.update(headers)

    def payload(self, alarm: Alarm) -> dict[str, Any]:
        return alarm.model_dump(mode="json")

    def handle(self, alarm: Alarm) -> None:
        try:
            response = self._session.post(self.url, json=self.payload(alarm), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Failed to deliver alarm to %s: %s", self.url, e)

    def close(self) -> None:
        self._session.close()
