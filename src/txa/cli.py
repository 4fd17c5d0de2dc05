"""CLI entry point for the transaction traffic analyzer."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from txa import __version__
from txa.collectors.base import BaseSource
from txa.collectors.jsonl import JsonLinesSource
from txa.collectors.sample import SampleSource
from txa.config import AnalyzerConfig, load_config
from txa.detection.alarms import AlarmSink
from txa.detection.predictor import NORMAL_LOSS_BOUND, Predictor
from txa.errors import ConfigError, ModelLoadError
from txa.logging_config import setup_logging
from txa.reporters.console_reporter import ConsoleAlarmReporter
from txa.reporters.json_reporter import JsonAlarmReporter
from txa.runtime import Analyzer

logger = logging.getLogger("txa.cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="txa",
        description="Transaction traffic analyzer -- windowed aggregation and anomaly alarms",
    )
    parser.add_argument(
        "--version", action="version", version=f"txa {__version__}"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Log level (DEBUG, INFO, WARNING, ERROR). Default: TXA_LOG_LEVEL or INFO",
    )
    parser.add_argument(
        "--alarm-file", type=str, default=None,
        help="Also write alarm log lines to this file. Default: TXA_ALARM_LOG_FILE",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # -- run command --
    run_parser = subparsers.add_parser("run", help="Aggregate the event stream and raise alarms")
    run_parser.add_argument(
        "--model", type=str, required=True,
        help="Path to the joblib model artifact",
    )
    run_parser.add_argument(
        "--source", type=str, default="-",
        help="Event source: a JSON-lines file, '-' for stdin, or 'sample'. Default: stdin",
    )
    run_parser.add_argument(
        "--alarm-log", type=str, default=None,
        help="Append alarms to this file as JSON lines",
    )
    run_parser.add_argument(
        "--webhook", type=str, default=None,
        help="POST each alarm as JSON to this URL",
    )
    run_parser.add_argument(
        "--console", action="store_true", default=False,
        help="Print a traffic summary table after every evaluation",
    )
    run_parser.add_argument(
        "--exit-on-eof", action="store_true", default=False,
        help="Run a final evaluation and exit once the source is exhausted",
    )

    # -- predict command --
    predict_parser = subparsers.add_parser(
        "predict", help="Score a traffic-mix feature row with the model",
    )
    predict_parser.add_argument(
        "--model", type=str, required=True,
        help="Path to the joblib model artifact",
    )
    predict_parser.add_argument("mt_rate", type=float, help="MT share of transactions")
    predict_parser.add_argument("mo_rate", type=float, help="MO share of transactions")
    predict_parser.add_argument("error_rate", type=float, help="FAILED share of transactions")
    predict_parser.add_argument("normalized_max", type=float, help="Normalized peak device MO rate")

    # -- validate command --
    subparsers.add_parser("validate", help="Validate the configuration and print derived values")

    return parser.parse_args(argv)


def get_source(source_str: str) -> BaseSource:
    """Create the event source named on the command line."""
    if source_str == "sample":
        return SampleSource()
    return JsonLinesSource(source_str)


def install_stop_handlers(stop: threading.Event, source: BaseSource) -> dict:
    """Make the first SIGINT/SIGTERM stop gracefully and a second one exit.

    Returns the previous handlers so the caller can restore them.
    """
    def _handle_signal(sig, frame):
        stop.set()
        source.stop()
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
        print("\nStopping analyzer...", file=sys.stderr)

    return {
        sig: signal.signal(sig, _handle_signal) for sig in (signal.SIGINT, signal.SIGTERM)
    }


def run_analyzer(args: argparse.Namespace, config: AnalyzerConfig) -> int:
    """Execute the run command."""
    if args.source not in ("-", "sample") and not Path(args.source).is_file():
        print(f"Error: Source file not found: {args.source}", file=sys.stderr)
        return 1

    predictor = Predictor(args.model)
    try:
        predictor.init()
    except ModelLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    sink = AlarmSink()
    webhook = None
    if args.alarm_log:
        sink.add_handler(JsonAlarmReporter(args.alarm_log))
    if args.webhook:
        from txa.reporters.webhook_reporter import WebhookAlarmReporter

        webhook = WebhookAlarmReporter(args.webhook)
        sink.add_handler(webhook)

    analyzer = Analyzer(config, predictor, alarm_sink=sink)
    if args.console:
        analyzer.result_listeners.append(ConsoleAlarmReporter().render)

    source = get_source(args.source)
    stop = threading.Event()

    previous_handlers = install_stop_handlers(stop, source)

    analyzer.start()
    try:
        count = analyzer.ingest(source.records())
        logger.info("Source %s exhausted after %d records", source.source_name, count)
        if args.exit_on_eof:
            analyzer.stop_timer()
            analyzer.tick()
        else:
            while not stop.wait(1.0):
                pass
    finally:
        analyzer.shutdown()
        if webhook is not None:
            webhook.close()
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)

    return 0


def run_predict(args: argparse.Namespace) -> int:
    """Execute the predict command."""
    predictor = Predictor(args.model)
    try:
        predictor.init()
    except ModelLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        vector = [args.mt_rate, args.mo_rate, args.error_rate, args.normalized_max]
        score = predictor.score(vector)
    finally:
        predictor.close()

    normal = Predictor.determine(score)
    print(f"score={score:.6f} bound={NORMAL_LOSS_BOUND} normal={normal}")
    return 0


def run_validate(config: AnalyzerConfig) -> int:
    """Execute the validate command."""
    print(f"window: {config.window_seconds}s (step {config.step_seconds}s, "
          f"retention {config.retention_ms // 1000}s)")
    print(f"big payload: size > {config.big_size_threshold} bytes, "
          f"proportion >= {config.big_size_proportion_threshold}")
    print(f"uri rate: >= {config.tpm_threshold} tx/min "
          f"for [{config.uri_key_from} .. {config.uri_key_to}]")
    print(f"devices: [{config.device_key_from} .. {config.device_key_to}]")
    print(f"store: {config.store_backend}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.alarm_file)

    if not args.command:
        parse_args(["--help"])
        return 1

    if args.command == "predict":
        return run_predict(args)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == "run":
        return run_analyzer(args, config)
    elif args.command == "validate":
        return run_validate(config)

    return 0


if __name__ == "__main__":
    sys.exit(main())
