"""Quickstart example for the transaction traffic analyzer.

Feeds one minute of synthetic traffic through the aggregation pipelines
and runs a single evaluation sweep over it. No model artifact is needed:
a stand-in predictor treats every traffic mix as normal.
"""

from txa.clock import ManualClock
from txa.collectors.sample import SampleSource
from txa.config import parse_config
from txa.detection.alarms import AlarmSink
from txa.reporters.console_reporter import ConsoleAlarmReporter
from txa.runtime import Analyzer


class AlwaysNormalPredictor:
    loaded = True

    def init(self):
        pass

    def close(self):
        pass

    def predict(self, mt_rate, mo_rate, error_rate, normalized_max):
        return True


def main():
    config = parse_config({
        "big.size.threshod": 1024,
        "big.size.proportion.threshod": 0.02,
        "time.window.in.second": 60,
        "time.window.step.in.second": 60,
        "tx.per.minute.threshod": 1000,
    })

    # Events are stamped inside the window [0s, 60s); the sweep runs at 120s
    clock = ManualClock(now_ms=0)
    source = SampleSource(
        {"rate_per_second": 0, "limit": 3000, "realtime": False, "big_ratio": 0.03, "seed": 7},
        clock=clock,
    )

    reporter = ConsoleAlarmReporter()
    analyzer = Analyzer(config, AlwaysNormalPredictor(), alarm_sink=AlarmSink(), clock=clock)
    analyzer.result_listeners.append(reporter.render)

    def timed_records():
        for i, record in enumerate(source.records()):
            clock.set(i * 20)
            yield record

    count = analyzer.ingest(timed_records())
    print(f"Ingested {count} synthetic events\n")

    clock.set(120_000)
    analyzer.tick()
    analyzer.shutdown()


if __name__ == "__main__":
    main()
