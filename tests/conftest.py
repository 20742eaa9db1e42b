"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Browser, BrowserContext, ElementHandle, Page

from webtest.crawler.element_extractor import ATTRIBUTES_JS
from webtest.crawler.selector_generator import (
    ELEMENT_IDENTIFIER_JS,
    TAG_NAME_JS,
    UNIQUE_SELECTOR_JS,
)
from webtest.executor.evidence_collector import ArtifactStore
from webtest.executor.suite_runner import SuiteRunContext
from webtest.models.config import ArtifactConfig, EngineConfig, MemoryConfig, RetryConfig
from webtest.models.test_suite import (
    Action,
    Assertion,
    AssertionType,
    Selector,
    SelectorType,
    Step,
    TestCase,
    TestData,
    TestSuite,
)
from webtest.utils.browser import BrowserManager

FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-image-bytes"


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def results_dir(tmp_path: Path) -> Path:
    """Temporary results directory for screenshots and logs."""
    return tmp_path / "testResults"


@pytest.fixture
def engine_config(results_dir: Path) -> EngineConfig:
    """Engine config with instant retries and memory recovery disabled."""
    return EngineConfig(
        artifacts=ArtifactConfig(results_dir=str(results_dir)),
        retry=RetryConfig(max_attempts=3, base_delay_ms=0),
        memory=MemoryConfig(enabled=False),
        case_timeout_seconds=5,
    )


@pytest.fixture
def artifact_store(engine_config: EngineConfig) -> ArtifactStore:
    return ArtifactStore(engine_config.artifacts)


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def login_steps() -> list[Step]:
    """Navigate, fill a login form and submit it."""
    return [
        Step(step_number=1, action=Action.NAVIGATE, value="https://example.com/login"),
        Step(
            step_number=2,
            action=Action.TYPE,
            selector=Selector(type=SelectorType.ID, value="email"),
            data_key="email",
            use_valid_data=True,
        ),
        Step(
            step_number=3,
            action=Action.TYPE,
            selector=Selector(type=SelectorType.NAME, value="password"),
            value="hunter2",
        ),
        Step(
            step_number=4,
            action=Action.CLICK,
            selector=Selector(type=SelectorType.CSS, value="button[type=submit]"),
        ),
    ]


@pytest.fixture
def test_case(login_steps: list[Step]) -> TestCase:
    return TestCase(
        id="tc-login",
        name="Login with valid credentials",
        steps=login_steps,
        assertions=[
            Assertion(assertion_type=AssertionType.URL_CONTAINS, expected_value="example.com"),
        ],
        test_data=TestData(valid={"email": "user@example.com"}, invalid={"email": "not-an-email"}),
    )


@pytest.fixture
def test_suite(test_case: TestCase) -> TestSuite:
    return TestSuite(id="suite-auth", name="Authentication", test_cases=[test_case])


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com"
    page.title.return_value = "Example Page"
    page.screenshot.return_value = FAKE_PNG
    page.query_selector_all.return_value = []
    page.wait_for_selector.return_value = None
    page.on = MagicMock()
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser context."""
    context = AsyncMock(spec=BrowserContext)
    context.new_page.return_value = mock_page
    return context


@pytest.fixture
def mock_browser(mock_context: AsyncMock, mock_page: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser."""
    browser = AsyncMock(spec=Browser)
    browser.new_context.return_value = mock_context
    browser.new_page.return_value = mock_page
    return browser


@pytest.fixture
def browser_manager(mock_page: AsyncMock, mock_context: AsyncMock) -> AsyncMock:
    """Mock BrowserManager handing out ``mock_page`` and ``mock_context``."""
    manager = AsyncMock(spec=BrowserManager)
    manager.new_page.return_value = mock_page
    manager.new_context.return_value = mock_context
    return manager


@pytest.fixture
def suite_context(engine_config: EngineConfig, artifact_store: ArtifactStore, mock_page: AsyncMock):
    """SuiteRunContext whose page source always hands out ``mock_page``."""
    return SuiteRunContext(
        config=engine_config,
        page_source=AsyncMock(return_value=mock_page),
        artifacts=artifact_store,
    )


@pytest.fixture
def element_factory():
    """Build mock ElementHandles that answer the crawler's DOM scripts."""

    def _make(
        selector: str = "div",
        attributes: dict[str, str] | None = None,
        box: dict[str, float] | None = None,
        visible: bool = True,
        text: str = "",
        identifier: dict[str, Any] | None = None,
        children: list | None = None,
    ) -> AsyncMock:
        element = AsyncMock(spec=ElementHandle)
        attrs = attributes or {}

        async def evaluate(script, *args):
            if script == UNIQUE_SELECTOR_JS:
                return selector
            if script == ATTRIBUTES_JS:
                return attrs
            if script == ELEMENT_IDENTIFIER_JS:
                if identifier is not None:
                    return identifier
                if selector.startswith("#"):
                    return {"kind": "id", "value": selector[1:]}
                return {"kind": "class", "value": ""}
            if script == TAG_NAME_JS:
                return selector.split(".")[0].split("[")[0]
            raise AssertionError(f"unexpected script: {script[:40]}")

        element.evaluate.side_effect = evaluate
        element.bounding_box.return_value = box
        element.is_visible.return_value = visible
        element.inner_text.return_value = text
        element.query_selector_all.return_value = children or []
        return element

    return _make
