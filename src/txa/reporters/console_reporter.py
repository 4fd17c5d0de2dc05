"""Console reporter with colored terminal output using Rich."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from txa.detection.alarms import Alarm, AlarmKind
from txa.detection.evaluator import EvaluationResult

KIND_COLORS: dict[AlarmKind, str] = {
    AlarmKind.URI_RATE: "yellow",
    AlarmKind.ABNORMAL_PATTERN: "bold red",
    AlarmKind.BIG_PAYLOAD: "red",
}


class ConsoleAlarmReporter:
    """Prints alarms and evaluation summaries to the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def handle(self, alarm: Alarm) -> None:
        """Print a single alarm line."""
        color = KIND_COLORS[alarm.kind]
        stamp = alarm.raised_at.strftime("%Y-%m-%d %H:%M:%S")
        self.console.print(
            f"[dim]{stamp}[/dim] [{color}]ALARM {alarm.kind.value.upper()}[/{color}] "
            f"{escape(alarm.message)}",
            highlight=False,
        )

    def render(self, result: EvaluationResult) -> None:
        """Print the traffic summary of one evaluation tick."""
        summary = result.summary
        window = summary.window.label if summary.window else "-"

        title = f"Traffic mix in [{window}]"
        table = Table(title=escape(title), min_width=len(title) + 4)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")

        table.add_row("Devices", str(summary.devices))
        table.add_row("Total", str(summary.total_count))
        table.add_row("MT", str(summary.mt_count))
        table.add_row("MO", str(summary.mo_count))
        table.add_row("Errors", str(summary.error_count))
        table.add_row("Big payloads", str(summary.big_count))
        if result.rates is not None:
            table.add_row("MT rate", f"{result.rates.mt_rate:.2%}")
            table.add_row("MO rate", f"{result.rates.mo_rate:.2%}")
            table.add_row("Error rate", f"{result.rates.error_rate:.2%}")
            table.add_row("Big payload rate", f"{result.rates.big_payload_rate:.2%}")
            table.add_row("Normalized MO max", f"{result.rates.normalized_max:.3f}")

        self.console.print(table)
        if not result.alarms:
            self.console.print("[green]No alarms.[/green]")
        for alarm in result.alarms:
            self.handle(alarm)
        self.console.print()
