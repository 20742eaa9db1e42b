"""Dependency gate: decides whether a test case may run."""

from __future__ import annotations

import logging
from typing import Mapping

from webtest.models.config import EngineConfig
from webtest.models.test_run import TestRun, TestStatus
from webtest.models.test_suite import TestCase

logger = logging.getLogger(__name__)

BLOCKED_MESSAGE = "Test blocked due to failed dependencies"


def can_run(test_case: TestCase, registry: Mapping[str, TestRun]) -> bool:
    """True when every dependency has a recorded run that PASSED."""
    for dep_id in test_case.depends_on:
        run = registry.get(dep_id)
        if run is None or run.status != TestStatus.PASSED:
            logger.debug("Dependency %s of %s not satisfied (%s)",
                         dep_id, test_case.id, run.status if run else "not run")
            return False
    return True


def record_blocked(
    test_case: TestCase,
    suite_run_id: str | None = None,
    config: EngineConfig | None = None,
) -> TestRun:
    """Build the BLOCKED run for a case whose dependencies did not pass."""
    config = config or EngineConfig()
    run = TestRun(
        test_case_id=test_case.id,
        test_suite_run_id=suite_run_id,
        environment=config.environment,
        run_by=config.run_by,
    )
    run.close_without_running(TestStatus.BLOCKED, BLOCKED_MESSAGE)
    logger.info("Test case %s blocked: depends on %s", test_case.id, ", ".join(test_case.depends_on))
    return run
