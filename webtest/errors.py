"""Exception hierarchy for the test engine."""

from __future__ import annotations

from typing import Any


class WebTestError(Exception):
    """Base class for all engine errors."""


# --- Validation: fail fast, never retried -----------------------------------


class ValidationError(WebTestError):
    pass


class InvalidUrlError(ValidationError):
    def __init__(self, url: str, reason: str = "malformed URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL '{url}': {reason}")


class MissingValueError(ValidationError):
    def __init__(self, action: str, step_id: str):
        self.action = action
        self.step_id = step_id
        super().__init__(f"No value provided for {action} action in step {step_id}")


class MissingSelectorError(ValidationError):
    def __init__(self, action: str, step_id: str):
        self.action = action
        self.step_id = step_id
        super().__init__(f"{action} action in step {step_id} requires a selector")


# --- Execution ---------------------------------------------------------------


class ExecutionError(WebTestError):
    pass


class UnsupportedActionError(ExecutionError):
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unsupported action: {action}")


class UnsupportedAssertionError(ExecutionError):
    def __init__(self, assertion_type: str):
        self.assertion_type = assertion_type
        super().__init__(f"Unsupported assertion type: {assertion_type}")


class StepExecutionError(ExecutionError):
    """A step failed; carries the offending step id and the original cause."""

    def __init__(self, step_id: str, cause: BaseException):
        self.step_id = step_id
        self.cause = cause
        super().__init__(f"Step {step_id} failed: {cause}")


class CaseTimeoutError(ExecutionError):
    def __init__(self, test_case_id: str, timeout_seconds: float):
        self.test_case_id = test_case_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Test case {test_case_id} exceeded its deadline of {timeout_seconds}s"
        )


# --- Assertion failures ------------------------------------------------------


class AssertionCheckError(WebTestError):
    """Expected-vs-observed mismatch raised by a single assertion branch."""

    def __init__(
        self,
        assertion_type: str,
        message: str,
        expected: Any = None,
        actual: Any = None,
    ):
        self.assertion_type = assertion_type
        self.expected = expected
        self.actual = actual
        super().__init__(message)


# --- Resource / infrastructure -----------------------------------------------


class InfrastructureError(WebTestError):
    pass


class DriverNotStartedError(InfrastructureError):
    def __init__(self) -> None:
        super().__init__("Browser driver has not been started")


class RetryExhaustedError(InfrastructureError):
    def __init__(self, label: str, attempts: int, last_error: BaseException):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{label} failed after {attempts} attempts: {last_error}")


class RecoveryError(InfrastructureError):
    pass


# --- Orchestration -----------------------------------------------------------


class SuiteNotFoundError(WebTestError):
    def __init__(self, suite_id: str):
        self.suite_id = suite_id
        super().__init__(f"Test suite with ID {suite_id} not found")


class InvalidTransitionError(ValueError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid test run transition: {current} -> {target}")
