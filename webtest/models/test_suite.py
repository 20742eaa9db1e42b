"""Declarative test suite structures consumed by the executor."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import Field

from webtest.models.test_run import TestStatus, WireModel


class SelectorType(StrEnum):
    ID = "id"
    NAME = "name"
    CSS = "css"
    XPATH = "xpath"
    CLASS_NAME = "className"
    TAG_NAME = "tagName"
    LINK_TEXT = "linkText"


class Action(StrEnum):
    NAVIGATE = "navigate"
    CLICK = "click"
    TYPE = "type"
    SELECT = "select"
    CHECK = "check"
    UNCHECK = "uncheck"
    CLEAR = "clear"
    SUBMIT = "submit"
    HOVER = "hover"
    WAIT = "wait"
    SCREENSHOT = "screenshot"
    ASSERT = "assert"


class AssertionType(StrEnum):
    ELEMENT_EXISTS = "elementExists"
    ELEMENT_VISIBLE = "elementVisible"
    ELEMENT_ENABLED = "elementEnabled"
    TEXT_EQUALS = "textEquals"
    TEXT_CONTAINS = "textContains"
    ATTRIBUTE_EQUALS = "attributeEquals"
    ATTRIBUTE_CONTAINS = "attributeContains"
    URL_EQUALS = "urlEquals"
    URL_CONTAINS = "urlContains"
    PAGE_TITLE = "pageTitle"
    HTTP_STATUS = "httpStatus"
    ELEMENT_COUNT = "elementCount"
    NETWORK_REQUEST = "networkRequest"
    PERFORMANCE_METRIC = "performanceMetric"
    ACCESSIBILITY = "accessibility"


class Priority(StrEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Selector(WireModel):
    # Unknown selector types are kept as plain strings and resolve to the raw value.
    type: SelectorType | str
    value: str
    id: Optional[str] = None


class TestData(WireModel):
    valid: dict[str, Any] = Field(default_factory=dict)
    invalid: Optional[dict[str, Any]] = None


class Step(WireModel):
    id: Optional[str] = None
    step_number: int
    action: Action
    selector: Optional[Selector] = None
    value: Optional[str] = None
    data_key: Optional[str] = None  # fixture key looked up in test data
    expected_result: str = ""
    timeout: Optional[int] = None  # ms
    wait_for_navigation: bool = False
    test_data: Optional[TestData] = None
    use_valid_data: bool = False

    @property
    def step_id(self) -> str:
        return self.id or f"step-{self.step_number}"


class Assertion(WireModel):
    id: Optional[str] = None
    description: str = ""
    assertion_type: AssertionType
    selector: Optional[Selector] = None
    expected_value: Optional[str] = None
    attribute: Optional[str] = None  # attributeEquals / attributeContains
    method: Optional[str] = None  # networkRequest
    accepted_statuses: Optional[list[int]] = None  # httpStatus
    threshold: Optional[int] = None  # performanceMetric, ms

    @property
    def assertion_id(self) -> str:
        return self.id or str(self.assertion_type)


class TestCase(WireModel):
    id: str
    name: str = ""
    description: str = ""
    test_type: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    steps: list[Step] = Field(default_factory=list)
    assertions: list[Assertion] = Field(default_factory=list)
    test_data: TestData = Field(default_factory=TestData)
    preconditions: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list)
    status: TestStatus = TestStatus.NOT_RUN

    def ordered_steps(self) -> list[Step]:
        """Steps in ascending step number; ties keep declaration order."""
        return sorted(self.steps, key=lambda s: s.step_number)


class TestSuite(WireModel):
    id: str
    name: str = ""
    description: str = ""
    priority: Priority = Priority.MEDIUM
    test_cases: list[TestCase] = Field(default_factory=list)
