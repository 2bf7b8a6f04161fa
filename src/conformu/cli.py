"""Command-line interface for conformu.

Usage:
    # Run the conformance test described by a settings file
    conformu run settings.yaml --results report.json

    # Stream results as JSON lines while the run progresses
    conformu run settings.yaml --stream results.jsonl

    # Serve simulated devices over Alpaca
    conformu simulate --port 11111 --move-time 0.2
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from conformu.cancellation import CancellationToken
from conformu.errors import HarnessError, SettingsError
from conformu.manager import ConformanceManager
from conformu.settings import load_settings
from conformu.simulator.server import serve
from conformu.sinks import FanOutResultSink, JsonLinesResultSink, LoggingResultSink, ResultSink
from conformu.types import Verdict

logger = logging.getLogger(__name__)

EXIT_INVALID_SETTINGS = 99

EXIT_CODES = {
    Verdict.PASS: 0,
    Verdict.WARNING: 0,
    Verdict.SKIPPED: 0,
    Verdict.FAIL: 1,
    Verdict.ABORTED: 2,
    Verdict.FATAL: 3,
}


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def install_signal_handlers(token: CancellationToken) -> dict[int, Any]:
    """Cancel ``token`` on SIGINT and SIGTERM.

    Returns:
        The previous handlers, for restore_signal_handlers().
    """

    def handler(signum: int, _frame: Any) -> None:
        logger.warning("Received %s, cancelling run", signal.Signals(signum).name)
        token.cancel()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, handler)
    return previous


def restore_signal_handlers(previous: dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def cmd_run(args: argparse.Namespace) -> int:
    """Run a conformance test."""
    try:
        settings = load_settings(args.settings)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID_SETTINGS
    except SettingsError as exc:
        print(f"Invalid settings in {args.settings}:", file=sys.stderr)
        for issue in exc.issues:
            print(f"  - {issue}", file=sys.stderr)
        return EXIT_INVALID_SETTINGS

    results_path = args.results or settings.run.results_file
    sink: ResultSink = LoggingResultSink()
    stream = JsonLinesResultSink(args.stream) if args.stream else None
    if stream is not None:
        sink = FanOutResultSink(sink, stream)

    token = CancellationToken()
    previous = install_signal_handlers(token)
    try:
        with ConformanceManager(settings, sink, token) as manager:
            try:
                report = manager.run_conformance_test()
            except HarnessError as exc:
                logger.critical("Run stopped by a harness error: %s", exc)
                report = manager.report
    finally:
        restore_signal_handlers(previous)
        if stream is not None:
            stream.close()

    if report is None:
        print("Error: the run ended without a report", file=sys.stderr)
        return EXIT_CODES[Verdict.FATAL]
    print(report.summary())
    if results_path:
        written = report.write_json(results_path)
        print(f"Report written to {written}")
    return EXIT_CODES[report.verdict]


def cmd_simulate(args: argparse.Namespace) -> int:
    """Serve simulated devices over Alpaca."""
    serve(host=args.host, port=args.port, move_time=args.move_time)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Conformance checker for ASCOM device drivers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Run a conformance test")
    run_parser.add_argument("settings", type=Path, help="Settings YAML file")
    run_parser.add_argument(
        "--results", type=Path, default=None,
        help="Write the JSON report here (overrides run.results_file)"
    )
    run_parser.add_argument(
        "--stream", type=Path, default=None,
        help="Stream each result as a JSON line to this file"
    )
    run_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sim_parser = subparsers.add_parser("simulate", help="Serve simulated devices over Alpaca")
    sim_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    sim_parser.add_argument("--port", type=int, default=11111, help="Port to listen on")
    sim_parser.add_argument(
        "--move-time", type=float, default=0.5,
        help="Seconds a filter change takes (default: 0.5)"
    )
    sim_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.debug)

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "simulate":
        return cmd_simulate(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
