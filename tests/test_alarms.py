"""Unit tests for the alarm sink."""

from __future__ import annotations

import logging

from txa.aggregation.models import Window
from txa.detection.alarms import AlarmKind, AlarmSink


class _Collector:
    def __init__(self):
        self.alarms = []

    def handle(self, alarm):
        self.alarms.append(alarm)


class _FailingHandler:
    def handle(self, alarm):
        raise OSError("disk full")


class TestRaiseAlarm:
    def test_formats_positional_placeholders(self):
        sink = AlarmSink()
        alarm = sink.raise_alarm(
            AlarmKind.URI_RATE,
            "uri[{}] tpm[{}] reach threshold[{}] in [{}]",
            "coap://10.255.8.101/mt", 1200.0, 1000, "00:00:00->00:01:00",
        )
        assert alarm.message == (
            "uri[coap://10.255.8.101/mt] tpm[1200.0] reach threshold[1000] in [00:00:00->00:01:00]"
        )
        assert alarm.args == ["coap://10.255.8.101/mt", 1200.0, 1000, "00:00:00->00:01:00"]

    def test_logs_on_alarm_logger(self, caplog):
        sink = AlarmSink()
        with caplog.at_level(logging.INFO, logger="txa.alarm"):
            sink.raise_alarm(AlarmKind.ABNORMAL_PATTERN, "abnormal mo pattern detected in [{}]", "w")
        assert "alarm: abnormal mo pattern detected in [w]" in caplog.text

    def test_forwards_to_handlers_with_window(self):
        collector = _Collector()
        sink = AlarmSink([collector])
        window = Window(start=0, end=60_000)
        sink.raise_alarm(AlarmKind.BIG_PAYLOAD, "big payload rate [{}]", 0.1, window=window)

        assert len(collector.alarms) == 1
        assert collector.alarms[0].window == window
        assert collector.alarms[0].kind == AlarmKind.BIG_PAYLOAD

    def test_bad_template_does_not_raise(self, caplog):
        collector = _Collector()
        sink = AlarmSink([collector])
        with caplog.at_level(logging.ERROR, logger="txa.alarm"):
            assert sink.raise_alarm(AlarmKind.URI_RATE, "uri[{}] tpm[{}]", "only-one") is None
        assert collector.alarms == []
        assert "Failed to format alarm" in caplog.text

    def test_failing_handler_does_not_stop_others(self, caplog):
        collector = _Collector()
        sink = AlarmSink([_FailingHandler()])
        sink.add_handler(collector)
        with caplog.at_level(logging.ERROR, logger="txa.alarm"):
            alarm = sink.raise_alarm(AlarmKind.URI_RATE, "uri[{}]", "x")
        assert alarm is not None
        assert collector.alarms == [alarm]
        assert "_FailingHandler failed" in caplog.text
