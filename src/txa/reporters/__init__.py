"""Alarm handlers rendering or forwarding raised alarms."""

from txa.reporters.console_reporter import ConsoleAlarmReporter
from txa.reporters.json_reporter import JsonAlarmReporter
from txa.reporters.webhook_reporter import WebhookAlarmReporter

__all__ = ["ConsoleAlarmReporter", "JsonAlarmReporter", "WebhookAlarmReporter"]
