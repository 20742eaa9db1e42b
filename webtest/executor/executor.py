"""Test executor: runs test suites sequentially or in parallel using Playwright."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

from webtest.errors import SuiteNotFoundError
from webtest.models.config import EngineConfig
from webtest.models.test_run import (
    AllSuitesSummary,
    PerformanceMetrics,
    SuiteSummary,
    TestSuiteRun,
    all_suites_summary,
    performance_metrics,
    suite_summary,
)
from webtest.models.test_suite import TestSuite
from webtest.utils.browser import BrowserManager

from . import suite_runner
from .evidence_collector import ArtifactStore, response_details
from .recovery import MemoryMonitor
from .suite_runner import SuiteRunContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Executor:
    """Runs test suites against a live site.

    The executor owns the browser for its lifetime: call ``start()`` and
    ``shutdown()`` (or use it as an async context manager). Every suite run
    gets its own SuiteRunContext. The suite runs and response details kept
    for reporting are dropped on ``shutdown()``; ``run_all_test_suites``
    returns its runs before that happens.
    """

    def __init__(self, config: EngineConfig | None = None, browser_manager: BrowserManager | None = None):
        self.config = config or EngineConfig()
        self.browser_manager = browser_manager or BrowserManager(self.config.browser, self.config.retry)
        self.memory = MemoryMonitor(self.config.memory)
        self.suite_runs: list[TestSuiteRun] = []
        self._response_cache: dict[str, dict] = {}

    async def start(self) -> None:
        await self.browser_manager.start()

    async def shutdown(self) -> None:
        try:
            await self.browser_manager.shutdown()
        finally:
            self.suite_runs.clear()
            self._response_cache.clear()

    async def __aenter__(self) -> "Executor":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.shutdown()

    def _new_context(self, page_source, allow_restart: bool) -> SuiteRunContext:
        return SuiteRunContext(
            config=self.config,
            page_source=page_source,
            artifacts=ArtifactStore(self.config.artifacts),
            memory=self.memory,
            browser_manager=self.browser_manager,
            allow_restart=allow_restart,
        )

    async def _run(self, ctx: SuiteRunContext, suite: TestSuite) -> TestSuiteRun:
        try:
            return await suite_runner.run_test_suite(ctx, suite)
        finally:
            if ctx.suite_run is not None:
                self.suite_runs.append(ctx.suite_run)
            self._response_cache.update(ctx.response_cache)

    async def run_test_suite(self, suite: TestSuite) -> TestSuiteRun:
        """Run one suite on the shared browser. The browser stays open."""
        await self.start()
        ctx = self._new_context(self.browser_manager.new_page, allow_restart=True)
        return await self._run(ctx, suite)

    async def run_all_test_suites(
        self, suites: list[TestSuite], parallel: bool | None = None,
    ) -> list[TestSuiteRun]:
        """Run every suite, then close the browser.

        Sequentially the suites share one browser. In parallel each suite gets
        its own browser context, with at most ``max_parallel_suites`` running
        at once; results keep the input order.
        """
        if parallel is None:
            parallel = self.config.parallel_suites
        logger.info("Running %d test suites (%s)", len(suites), "parallel" if parallel else "sequential")
        try:
            if parallel:
                return await self._run_parallel(suites)
            return [await self.run_test_suite(suite) for suite in suites]
        finally:
            await self.shutdown()

    async def _run_parallel(self, suites: list[TestSuite]) -> list[TestSuiteRun]:
        await self.start()
        semaphore = asyncio.Semaphore(self.config.max_parallel_suites)

        async def _run_one(suite: TestSuite) -> TestSuiteRun:
            async with semaphore:
                context = await self.browser_manager.new_context()
                try:
                    ctx = self._new_context(
                        lambda: self.browser_manager.new_page(context), allow_restart=False,
                    )
                    return await self._run(ctx, suite)
                finally:
                    await context.close()

        results = await asyncio.gather(*(_run_one(s) for s in suites), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def run_test_suite_by_id(self, suites: list[TestSuite], suite_id: str) -> TestSuiteRun:
        for suite in suites:
            if suite.id == suite_id:
                return await self.run_test_suite(suite)
        raise SuiteNotFoundError(suite_id)

    def get_suite_summary(self, suite_run: TestSuiteRun) -> SuiteSummary:
        return suite_summary(suite_run)

    def get_all_suites_summary(self, suite_runs: list[TestSuiteRun] | None = None) -> AllSuitesSummary:
        return all_suites_summary(self.suite_runs if suite_runs is None else suite_runs)

    def performance_metrics(self, suite_runs: list[TestSuiteRun] | None = None) -> PerformanceMetrics:
        runs = self.suite_runs if suite_runs is None else suite_runs
        total_duration = sum(r.duration or 0 for r in runs)
        total_tests = sum(r.total_tests for r in runs)
        return performance_metrics(total_duration, total_tests)

    async def measure_performance(self, operation: Callable[[], Awaitable[T]], label: str) -> T:
        """Await ``operation()`` and log how long it took."""
        start = time.perf_counter()
        try:
            return await operation()
        finally:
            logger.info("%s took %dms", label, round((time.perf_counter() - start) * 1000))

    def response_details(self) -> list[dict]:
        return response_details(self._response_cache)
