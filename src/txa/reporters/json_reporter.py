"""JSON-lines reporter for machine-readable alarm output."""

from __future__ import annotations

import json
import threading
from pathlib import Path

from txa.detection.alarms import Alarm


class JsonAlarmReporter:
    """Appends one JSON document per alarm to a file.

    The output is meant for log shippers feeding an observability
    pipeline, one alarm per line.
    """

    def __init__(self, output_path: str | Path):
        self.output_path = Path(output_path)
        self._lock = threading.Lock()

    def render(self, alarm: Alarm) -> str:
        """Render an alarm as a single-line JSON string."""
        data = alarm.model_dump(mode="json")
        return json.dumps(data, default=str)

    def handle(self, alarm: Alarm) -> None:
        """Append the alarm to the output file."""
        line = self.render(alarm)
        with self._lock:
            with open(self.output_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
