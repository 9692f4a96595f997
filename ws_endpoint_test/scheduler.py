"""Scheduling of repeated test runs, one independent worker per test."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from ws_endpoint_test.engine import run_test
from ws_endpoint_test.errors import DeadlineError, InputError
from ws_endpoint_test.models.definition import WebSocketTest
from ws_endpoint_test.models.result import TestResult
from ws_endpoint_test.transport.base import WebSocketTransport

log = logging.getLogger(__name__)

type ResultSink = Callable[[TestResult], Awaitable[None]]


@dataclass(kw_only=True)
class TestTally:
    """Run counts of a single test."""

    __test__ = False

    name: str
    runs: int = 0
    passed: int = 0
    failed: int = 0
    errors: int = 0


@dataclass(frozen=True, kw_only=True)
class TestScheduler:
    """Runs every test in its own task, repeating it ``runs`` times.

    ``runs=0`` repeats until ``stop`` is set. The stop event is checked
    between runs and interrupts the sleep between them; a run in progress is
    always completed.
    """

    __test__ = False

    transport: WebSocketTransport
    sink: ResultSink
    runs: int = 1
    stop: asyncio.Event = field(default_factory=asyncio.Event)

    async def run_tests(self, tests: Sequence[WebSocketTest]) -> Sequence[TestTally]:
        """Run all tests concurrently and return their tallies.

        Errors raised by the sink abort the whole schedule.
        """
        if not tests:
            log.info("No tests to run")
            return []

        log.info(
            "Running %d test(s), %s run(s) each",
            len(tests),
            self.runs or "unlimited",
        )
        return await asyncio.gather(*(self._run_repeatedly(test) for test in tests))

    async def _run_repeatedly(self, test: WebSocketTest) -> TestTally:
        tally = TestTally(name=test.name)

        while not self.stop.is_set() and (self.runs == 0 or tally.runs < self.runs):
            if tally.runs and await self._sleep(test.sleep.total_seconds()):
                break

            tally.runs += 1
            try:
                result = await run_test(self.transport, test)
            except InputError as e:
                tally.errors += 1
                log.error("failed ws test %r: %s", test.name, e)
                continue
            except DeadlineError as e:
                tally.errors += 1
                log.error("failed ws test %r: %s", test.name, e)
                if e.result is not None:
                    await self.sink(e.result)
                continue

            if result.is_success():
                tally.passed += 1
            else:
                tally.failed += 1
            await self.sink(result)

        return tally

    async def _sleep(self, seconds: float) -> bool:
        """Sleep between runs; returns True when stopped meanwhile."""
        try:
            await asyncio.wait_for(self.stop.wait(), timeout=seconds)
        except TimeoutError:
            return False
        return True
