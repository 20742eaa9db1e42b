"""Suite run coordinator: runs a suite's cases in order and aggregates the result."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from playwright.async_api import Page

from webtest.models.config import EngineConfig
from webtest.models.test_run import TestRun, TestStatus, TestSuiteRun
from webtest.models.test_suite import TestCase, TestSuite
from webtest.utils.browser import BrowserManager

from .case_runner import run_test_case
from .dependency_gate import can_run, record_blocked
from .evidence_collector import ArtifactStore
from .recovery import MemoryMonitor

logger = logging.getLogger(__name__)


@dataclass
class SuiteRunContext:
    """Everything one suite run needs; created per run and discarded after.

    ``page_source`` opens a fresh, isolated page for each test case.
    ``registry`` maps test case id to its recorded run and feeds the
    dependency gate. ``allow_restart`` is False when other suites share the
    browser concurrently.
    """

    config: EngineConfig
    page_source: Callable[[], Awaitable[Page]]
    artifacts: ArtifactStore
    registry: dict[str, TestRun] = field(default_factory=dict)
    response_cache: dict[str, dict] = field(default_factory=dict)
    memory: Optional[MemoryMonitor] = None
    browser_manager: Optional[BrowserManager] = None
    allow_restart: bool = True
    suite_run: Optional[TestSuiteRun] = None


def determine_suite_status(run: TestSuiteRun) -> TestStatus:
    """Aggregate case outcomes into the suite status.

    Any failure makes the suite FAILED, all cases passing makes it PASSED,
    otherwise any blocked case makes it BLOCKED. A suite that is none of
    these (for example only skipped cases) is reported FAILED.
    """
    if run.failed_tests > 0:
        return TestStatus.FAILED
    if run.passed_tests == run.total_tests:
        return TestStatus.PASSED
    if run.blocked_tests > 0:
        return TestStatus.BLOCKED
    return TestStatus.FAILED


def _record_skipped(ctx: SuiteRunContext, test_case: TestCase, reason: str) -> TestRun:
    run = TestRun(
        test_case_id=test_case.id,
        test_suite_run_id=ctx.suite_run.id if ctx.suite_run else None,
        environment=ctx.config.environment,
        run_by=ctx.config.run_by,
    )
    run.close_without_running(TestStatus.SKIPPED, reason)
    return run


def _register(ctx: SuiteRunContext, run: TestRun) -> None:
    ctx.registry[run.test_case_id] = run
    ctx.suite_run.add_run(run)


async def run_test_suite(ctx: SuiteRunContext, suite: TestSuite) -> TestSuiteRun:
    """Run every case of ``suite`` in declared order.

    Statistics, timestamps and the screenshot queue are finalized even when
    a fatal error escapes; the error is then re-raised.
    """
    config = ctx.config
    suite_run = TestSuiteRun(
        test_suite_id=suite.id,
        total_tests=len(suite.test_cases),
        environment=config.environment,
        run_by=config.run_by,
    )
    ctx.suite_run = suite_run
    logger.info("Running test suite %s: %s (%d test cases)",
                suite.id, suite.name, len(suite.test_cases))

    deadline = None
    if config.max_suite_duration_seconds is not None:
        deadline = time.monotonic() + config.max_suite_duration_seconds

    try:
        for test_case in suite.test_cases:
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning("Time limit reached, skipping %s", test_case.id)
                _register(ctx, _record_skipped(ctx, test_case, "Suite time limit reached"))
                continue

            if not can_run(test_case, ctx.registry):
                _register(ctx, record_blocked(test_case, suite_run.id, config))
                continue

            await run_test_case(ctx, test_case)
            if ctx.memory is not None:
                await ctx.memory.check(ctx.browser_manager, ctx.allow_restart)
    except Exception as e:
        logger.error("Test suite %s aborted: %s", suite.id, e)
        for test_case in suite.test_cases:
            if test_case.id not in ctx.registry:
                _register(ctx, _record_skipped(ctx, test_case, f"Suite aborted: {e}"))
        raise
    finally:
        suite_run.finalize(determine_suite_status(suite_run))
        try:
            await ctx.artifacts.process_screenshot_queue()
        finally:
            ctx.artifacts.clear()
        logger.info(
            "Suite %s %s: %d passed, %d failed, %d blocked, %d skipped (%dms)",
            suite.id, suite_run.status, suite_run.passed_tests, suite_run.failed_tests,
            suite_run.blocked_tests, suite_run.skipped_tests, suite_run.duration or 0,
        )

    return suite_run
