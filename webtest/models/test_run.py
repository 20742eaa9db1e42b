"""Execution records produced by the executor."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from webtest.errors import InvalidTransitionError


class WireModel(BaseModel):
    """Base for records exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TestStatus(StrEnum):
    NOT_RUN = "NOT_RUN"
    RUNNING = "RUNNING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    BLOCKED = "BLOCKED"
    SKIPPED = "SKIPPED"


TERMINAL_STATUSES = frozenset(
    {TestStatus.PASSED, TestStatus.FAILED, TestStatus.BLOCKED, TestStatus.SKIPPED}
)

_ALLOWED_TRANSITIONS: dict[TestStatus, frozenset[TestStatus]] = {
    TestStatus.NOT_RUN: frozenset({TestStatus.RUNNING, TestStatus.BLOCKED, TestStatus.SKIPPED}),
    TestStatus.RUNNING: frozenset({TestStatus.PASSED, TestStatus.FAILED}),
}


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def duration_ms(started_at: datetime, completed_at: datetime) -> int:
    return round((completed_at - started_at).total_seconds() * 1000)


class StepLog(WireModel):
    step_id: str
    success: bool
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


class AssertionLog(WireModel):
    assertion_id: str
    assertion_type: str = ""
    success: bool
    error: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


class RunLogs(WireModel):
    steps: list[StepLog] = Field(default_factory=list)
    assertions: list[AssertionLog] = Field(default_factory=list)
    message: Optional[str] = None


class TestRun(WireModel):
    """Execution record of one test case.

    Status only moves forward: ``NOT_RUN -> RUNNING -> PASSED|FAILED`` for
    executed cases, or ``NOT_RUN -> BLOCKED|SKIPPED`` for cases that never
    open a page. Once ``completed_at`` is set the record is final.
    """

    id: str = Field(default_factory=lambda: new_id("testcase"))
    test_case_id: str
    status: TestStatus = TestStatus.NOT_RUN
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None  # ms
    error_message: Optional[str] = None
    stack_trace: Optional[str] = None
    screenshot: Optional[str] = None  # data:image/png;base64,...
    logs: RunLogs = Field(default_factory=RunLogs)
    metadata: dict[str, Any] = Field(default_factory=dict)
    environment: str = "default"
    run_by: Optional[str] = None
    test_suite_run_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    def _transition(self, target: TestStatus) -> None:
        if self.is_complete or target not in _ALLOWED_TRANSITIONS.get(self.status, frozenset()):
            raise InvalidTransitionError(self.status, target)
        self.status = target

    def start(self) -> None:
        self._transition(TestStatus.RUNNING)
        self.started_at = utc_now()

    def finish(
        self,
        status: TestStatus,
        error_message: str | None = None,
        stack_trace: str | None = None,
    ) -> None:
        self._transition(status)
        if error_message is not None:
            self.error_message = error_message
        if stack_trace is not None:
            self.stack_trace = stack_trace
        self.completed_at = utc_now()
        self.duration = duration_ms(self.started_at or self.completed_at, self.completed_at)

    def close_without_running(self, status: TestStatus, message: str) -> None:
        """Record a terminal state for a case that never executed."""
        self._transition(status)
        now = utc_now()
        self.started_at = now
        self.completed_at = now
        self.duration = 0
        self.logs = RunLogs(message=message)


class TestSuiteRun(WireModel):
    id: str = Field(default_factory=lambda: new_id("testsuite"))
    test_suite_id: str
    status: TestStatus = TestStatus.RUNNING
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None  # ms
    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    skipped_tests: int = 0
    blocked_tests: int = 0
    test_runs: list[TestRun] = Field(default_factory=list)
    environment: str = "default"
    run_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def counted_tests(self) -> int:
        return self.passed_tests + self.failed_tests + self.blocked_tests + self.skipped_tests

    def add_run(self, run: TestRun) -> None:
        self.test_runs.append(run)
        match run.status:
            case TestStatus.PASSED:
                self.passed_tests += 1
            case TestStatus.FAILED:
                self.failed_tests += 1
            case TestStatus.BLOCKED:
                self.blocked_tests += 1
            case TestStatus.SKIPPED:
                self.skipped_tests += 1
            case _:
                raise InvalidTransitionError(run.status, "recorded")

    def finalize(self, status: TestStatus) -> None:
        self.completed_at = utc_now()
        self.duration = duration_ms(self.started_at, self.completed_at)
        self.status = status


class SuiteSummary(WireModel):
    suite_id: str
    status: TestStatus
    total_tests: int
    passed: int
    failed: int
    blocked: int
    skipped: int
    duration: Optional[int] = None


class AllSuitesSummary(WireModel):
    total_suites: int = 0
    passed_suites: int = 0
    failed_suites: int = 0
    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    blocked_tests: int = 0
    skipped_tests: int = 0
    total_duration: int = 0


class PerformanceMetrics(WireModel):
    total_duration: int = 0
    average_test_duration: float = 0.0


def suite_summary(run: TestSuiteRun) -> SuiteSummary:
    return SuiteSummary(
        suite_id=run.test_suite_id,
        status=run.status,
        total_tests=run.total_tests,
        passed=run.passed_tests,
        failed=run.failed_tests,
        blocked=run.blocked_tests,
        skipped=run.skipped_tests,
        duration=run.duration,
    )


def all_suites_summary(runs: list[TestSuiteRun]) -> AllSuitesSummary:
    return AllSuitesSummary(
        total_suites=len(runs),
        passed_suites=sum(1 for r in runs if r.status == TestStatus.PASSED),
        failed_suites=sum(1 for r in runs if r.status == TestStatus.FAILED),
        total_tests=sum(r.total_tests for r in runs),
        passed_tests=sum(r.passed_tests for r in runs),
        failed_tests=sum(r.failed_tests for r in runs),
        blocked_tests=sum(r.blocked_tests for r in runs),
        skipped_tests=sum(r.skipped_tests for r in runs),
        total_duration=sum(r.duration or 0 for r in runs),
    )


def performance_metrics(total_duration: int, total_tests: int) -> PerformanceMetrics:
    average = total_duration / total_tests if total_tests else 0.0
    return PerformanceMetrics(total_duration=total_duration, average_test_duration=average)
