"""CLI entry point for the WebSocket endpoint tester."""

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from ws_endpoint_test.definition_loader import load_tests_file
from ws_endpoint_test.errors import RecordWriteError
from ws_endpoint_test.models.definition import WebSocketTest
from ws_endpoint_test.models.duration import MINUTE, Duration
from ws_endpoint_test.reporting import ResultReporter
from ws_endpoint_test.scheduler import TestScheduler, TestTally
from ws_endpoint_test.transport.aiohttp_client import AiohttpTransport
from ws_endpoint_test.transport.config import TransportConfig

COMMANDLINE_TEST_NAME = "commandline"

STATUS_SYMBOLS = {
    "success": "✅",
    "failure": "❌",
    "error": "❗",
}


def commandline_test(url: str) -> WebSocketTest:
    """Build the ad-hoc test used for ``-test.url``."""
    return WebSocketTest(
        name=COMMANDLINE_TEST_NAME,
        url=url,
        handshake_timeout=Duration(20 * MINUTE),
        message_read_timeout=Duration(10 * MINUTE),
        sleep=Duration(5 * MINUTE),
    )


def tally_status(tally: TestTally) -> str:
    """Summarize the runs of a test as success, failure or error."""
    if tally.errors:
        return "error"
    if tally.failed or not tally.runs:
        return "failure"
    return "success"


def log_results_summary(log: logging.Logger, tallies: Sequence[TestTally]) -> None:
    """Log a formatted summary of the runs of every test."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for tally in tallies:
        status = tally_status(tally)
        log.info(
            "%s %s: %s (%d run(s), %d passed, %d failed, %d error(s))",
            STATUS_SYMBOLS[status],
            tally.name,
            status,
            tally.runs,
            tally.passed,
            tally.failed,
            tally.errors,
        )


def install_stop_handler(stop: asyncio.Event) -> None:
    """Stop scheduling new runs on SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)


async def resolve_tests(
    url: str | None, tests_file: Path | None
) -> Sequence[WebSocketTest]:
    """Collect the tests given on the command line."""
    tests: list[WebSocketTest] = []
    if url:
        tests.append(commandline_test(url))
    if tests_file is not None:
        tests.extend(await load_tests_file(tests_file))
    return tests


async def run(
    url: str | None,
    tests_file: Path | None,
    out_dir: Path | None = None,
    runs: int = 1,
    transport_config_json: str = "{}",
) -> int:
    """Run the tests and return exit code."""
    log = logging.getLogger("ws_endpoint_test")

    if url and tests_file is not None:
        print("-test.url and -tests are mutually exclusive", file=sys.stderr)
        return 1

    try:
        config = TransportConfig(**json.loads(transport_config_json))
    except (ValueError, TypeError) as e:
        print(f"invalid transport configuration: {e}", file=sys.stderr)
        return 1

    try:
        tests = await resolve_tests(url, tests_file)
    except (FileNotFoundError, ValueError) as e:
        print(f"error loading tests file: {e}", file=sys.stderr)
        return 1

    if not tests:
        print("no tests found, use -test.url or -tests to load", file=sys.stderr)
        return 1

    if out_dir is not None:
        try:
            out_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            log.error("Could not create output directory %s: %s", out_dir, e)
            return 1

    stop = asyncio.Event()
    install_stop_handler(stop)

    async with AiohttpTransport.from_config(config) as transport:
        scheduler = TestScheduler(
            transport=transport,
            sink=ResultReporter(out_dir=out_dir),
            runs=runs,
            stop=stop,
        )
        try:
            tallies = await scheduler.run_tests(tests)
        except RecordWriteError as e:
            log.critical("%s", e)
            return 1

    log_results_summary(log, tallies)
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Test and monitor WebSocket endpoints", allow_abbrev=False
    )
    parser.add_argument("-test.url", dest="url", help="ws/wss url to test")
    parser.add_argument(
        "-tests",
        dest="tests_file",
        type=Path,
        help="tests file to load urls/rules from",
    )
    parser.add_argument(
        "-dir",
        dest="out_dir",
        type=Path,
        help="directory to output result files into",
    )
    parser.add_argument(
        "-n",
        dest="runs",
        type=int,
        default=1,
        help="number of times to run each test (0=run forever)",
    )
    parser.add_argument(
        "-transport.config",
        dest="transport_config",
        default="{}",
        help="JSON configuration for the transport",
    )

    args = parser.parse_args()
    if args.runs < 0:
        parser.error("-n must not be negative")

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            url=args.url,
            tests_file=args.tests_file,
            out_dir=args.out_dir,
            runs=args.runs,
            transport_config_json=args.transport_config,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
