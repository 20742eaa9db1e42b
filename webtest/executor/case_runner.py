"""Test case runner: executes one test case on an isolated page."""

from __future__ import annotations

import asyncio
import logging
import traceback
from typing import TYPE_CHECKING, Any

from playwright.async_api import Page

from webtest.errors import CaseTimeoutError, InfrastructureError, StepExecutionError
from webtest.models.test_run import AssertionLog, StepLog, TestRun, TestStatus
from webtest.models.test_suite import TestCase

from .action_runner import run_step
from .assertion_checker import check_assertion
from .evidence_collector import NetworkRecorder

if TYPE_CHECKING:
    from .suite_runner import SuiteRunContext

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str | None:
    return None if value is None else str(value)


async def run_test_case(ctx: SuiteRunContext, test_case: TestCase) -> TestRun:
    """Run ``test_case`` and record the TestRun in the suite run.

    Steps run in step-number order and stop at the first failure; assertions
    only run when every step succeeded, and all of them run. The case is
    bounded by ``case_timeout_seconds``. Whatever happens, the page is closed,
    the run's logs are written and the run is registered with the suite.
    Infrastructure errors are re-raised after the run is recorded.
    """
    config = ctx.config
    run = TestRun(
        test_case_id=test_case.id,
        test_suite_run_id=ctx.suite_run.id if ctx.suite_run else None,
        environment=config.environment,
        run_by=config.run_by,
        metadata={"name": test_case.name, "priority": str(test_case.priority)},
    )
    run.start()
    logger.info("Running test case %s: %s", test_case.id, test_case.name)

    page: Page | None = None
    fatal: InfrastructureError | None = None
    try:
        page = await ctx.page_source()
        recorder = NetworkRecorder(ctx.response_cache)
        recorder.attach(page)
        await asyncio.wait_for(
            _execute(ctx, test_case, run, page, recorder),
            timeout=config.case_timeout_seconds,
        )
    except asyncio.TimeoutError:
        await _fail(ctx, run, page, CaseTimeoutError(test_case.id, config.case_timeout_seconds))
    except InfrastructureError as e:
        await _fail(ctx, run, page, e)
        fatal = e
    except Exception as e:
        await _fail(ctx, run, page, e)
    finally:
        if page is not None:
            try:
                await page.close()
            except Exception as e:
                logger.warning("Error closing page for %s: %s", test_case.id, e)
        try:
            ctx.artifacts.save_test_logs(run)
        except OSError as e:
            logger.error("Failed to save logs for %s: %s", test_case.id, e)
        ctx.registry[test_case.id] = run
        if ctx.suite_run is not None:
            ctx.suite_run.add_run(run)

    logger.info("[%s] %s: %s (%dms)", run.status, test_case.id, test_case.name, run.duration or 0)
    if fatal is not None:
        raise fatal
    return run


async def _execute(
    ctx: SuiteRunContext, test_case: TestCase, run: TestRun, page: Page, recorder: NetworkRecorder,
) -> None:
    steps = test_case.ordered_steps()
    logger.debug("  Running %d test steps...", len(steps))
    for step in steps:
        try:
            await run_step(page, step, test_case.test_data, ctx.config)
        except StepExecutionError as e:
            run.logs.steps.append(StepLog(step_id=step.step_id, success=False, error=str(e.cause)))
            run.screenshot = await ctx.artifacts.capture_screenshot(
                page, test_case.id, f"failed-step-{step.step_id}",
            )
            raise
        run.logs.steps.append(StepLog(step_id=step.step_id, success=True))

    logger.debug("  Checking %d assertions...", len(test_case.assertions))
    failure_reasons = []
    for assertion in test_case.assertions:
        result = await check_assertion(
            page,
            assertion,
            artifacts=ctx.artifacts,
            test_case_id=test_case.id,
            network_log=recorder,
            config=ctx.config,
        )
        run.logs.assertions.append(AssertionLog(
            assertion_id=assertion.assertion_id,
            assertion_type=str(assertion.assertion_type),
            success=result.passed,
            error=None if result.passed else result.message,
            expected=_as_text(result.expected),
            actual=_as_text(result.actual),
        ))
        if not result.passed:
            failure_reasons.append(result.message)
            if run.screenshot is None:
                run.screenshot = result.screenshot

    if failure_reasons:
        run.finish(
            TestStatus.FAILED,
            error_message=f"{len(failure_reasons)} assertion(s) failed: " + "; ".join(failure_reasons),
        )
    else:
        run.finish(TestStatus.PASSED)


async def _fail(ctx: SuiteRunContext, run: TestRun, page: Page | None, error: BaseException) -> None:
    logger.error("Test case %s failed: %s", run.test_case_id, error)
    if page is not None and run.screenshot is None:
        run.screenshot = await ctx.artifacts.capture_screenshot(page, run.test_case_id, "error")
    run.finish(
        TestStatus.FAILED,
        error_message=str(error),
        stack_trace="".join(traceback.format_exception(error)),
    )
