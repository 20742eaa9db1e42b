"""Assertion checker: evaluates test assertions against page state."""

from __future__ import annotations

import logging
from typing import Any

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from webtest.errors import AssertionCheckError, UnsupportedAssertionError
from webtest.models.config import EngineConfig
from webtest.models.test_suite import Assertion, AssertionType

from .evidence_collector import ArtifactStore, NetworkRecorder
from .selector_resolver import build_selector

logger = logging.getLogger(__name__)

_LOAD_TIME_SCRIPT = """() => {
    const [nav] = performance.getEntriesByType('navigation');
    if (nav) {
        return nav.loadEventEnd > 0 ? nav.loadEventEnd - nav.startTime : nav.duration;
    }
    const t = performance.timing;
    return t.loadEventEnd > 0 ? t.loadEventEnd - t.navigationStart : null;
}"""


class AssertionResult:
    def __init__(
        self,
        passed: bool,
        message: str = "",
        expected: Any = None,
        actual: Any = None,
        screenshot: str | None = None,
    ):
        self.passed = passed
        self.message = message
        self.expected = expected
        self.actual = actual
        self.screenshot = screenshot


async def check_assertion(
    page: Page,
    assertion: Assertion,
    *,
    artifacts: ArtifactStore | None = None,
    test_case_id: str = "",
    network_log: NetworkRecorder | None = None,
    config: EngineConfig | None = None,
) -> AssertionResult:
    """Evaluate a single assertion and return the result.

    Never raises: every failure becomes a failed AssertionResult so sibling
    assertions keep running. When ``artifacts`` is given, a failure attaches a
    ``failed-<type>`` screenshot; the file name carries the capture timestamp.
    """
    config = config or EngineConfig()
    kind = assertion.assertion_type
    selector = build_selector(assertion.selector)
    timeout = config.assertion_timeout_ms
    logger.debug("Checking assertion %s: %s %s", assertion.assertion_id, kind, selector)

    try:
        match kind:
            case AssertionType.ELEMENT_EXISTS:
                result = await _check_element_exists(page, assertion, selector, timeout)
            case AssertionType.ELEMENT_VISIBLE:
                result = await _check_element_visible(page, assertion, selector, timeout)
            case AssertionType.ELEMENT_ENABLED:
                result = await _check_element_enabled(page, assertion, selector, timeout)
            case AssertionType.TEXT_EQUALS:
                result = await _check_text_equals(page, assertion, selector, timeout)
            case AssertionType.TEXT_CONTAINS:
                result = await _check_text_contains(page, assertion, selector, timeout)
            case AssertionType.ATTRIBUTE_EQUALS | AssertionType.ATTRIBUTE_CONTAINS:
                result = await _check_attribute(page, assertion, selector, timeout)
            case AssertionType.URL_EQUALS:
                result = _check_url_equals(page, assertion)
            case AssertionType.URL_CONTAINS:
                result = _check_url_contains(page, assertion)
            case AssertionType.PAGE_TITLE:
                result = await _check_page_title(page, assertion)
            case AssertionType.HTTP_STATUS:
                result = await _check_http_status(page, assertion, network_log, config)
            case AssertionType.ELEMENT_COUNT:
                result = await _check_element_count(page, assertion, selector)
            case AssertionType.NETWORK_REQUEST:
                result = await _check_network_request(page, assertion, network_log, timeout)
            case AssertionType.PERFORMANCE_METRIC:
                result = await _check_performance(page, assertion, config)
            case AssertionType.ACCESSIBILITY:
                result = await _check_accessibility(page, assertion, timeout)
            case _:
                raise UnsupportedAssertionError(str(kind))
    except AssertionCheckError as e:
        result = AssertionResult(False, str(e), e.expected, e.actual)
    except Exception as e:
        result = AssertionResult(False, f"Assertion error: {e}")

    if not result.passed:
        logger.info("Assertion %s failed: %s", assertion.assertion_id, result.message)

    if artifacts is not None:
        label = None
        if not result.passed:
            label = f"failed-{kind}"
        elif kind == AssertionType.HTTP_STATUS:
            label = f"{kind}-{result.actual}"
        elif config.artifacts.capture_success_screenshots:
            label = f"success-{kind}"
        if label:
            result.screenshot = await artifacts.capture_screenshot(page, test_case_id, label)

    return result


def _require_selector(selector: str, assertion: Assertion) -> str:
    if not selector:
        raise AssertionCheckError(
            assertion.assertion_type, f"{assertion.assertion_type} assertion requires a selector",
        )
    return selector


def _require_expected(assertion: Assertion) -> str:
    if not assertion.expected_value:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"Expected value not provided for {assertion.assertion_type} assertion",
        )
    return assertion.expected_value


async def _wait_for(page: Page, assertion: Assertion, selector: str, state: str, timeout: int):
    try:
        return await page.wait_for_selector(selector, state=state, timeout=timeout)
    except PlaywrightTimeoutError:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"Element '{selector}' not {state} within {timeout}ms",
            expected=state,
            actual="not found",
        ) from None


async def _check_element_exists(
    page: Page, assertion: Assertion, selector: str, timeout: int,
) -> AssertionResult:
    selector = _require_selector(selector, assertion)
    await _wait_for(page, assertion, selector, "attached", timeout)
    return AssertionResult(True, f"Element '{selector}' exists")


async def _check_element_visible(
    page: Page, assertion: Assertion, selector: str, timeout: int,
) -> AssertionResult:
    selector = _require_selector(selector, assertion)
    el = await _wait_for(page, assertion, selector, "visible", timeout)
    if assertion.expected_value:
        text = ((await el.text_content()) or "").strip() if el else ""
        if text != assertion.expected_value.strip():
            raise AssertionCheckError(
                assertion.assertion_type,
                f'Text mismatch. Expected: "{assertion.expected_value}", Found: "{text}"',
                expected=assertion.expected_value,
                actual=text,
            )
    return AssertionResult(True, f"Element '{selector}' is visible")


async def _check_element_enabled(
    page: Page, assertion: Assertion, selector: str, timeout: int,
) -> AssertionResult:
    selector = _require_selector(selector, assertion)
    el = await _wait_for(page, assertion, selector, "attached", timeout)
    if el is None or not await el.is_enabled():
        raise AssertionCheckError(
            assertion.assertion_type, f"Element '{selector}' is disabled",
            expected="enabled", actual="disabled",
        )
    return AssertionResult(True, f"Element '{selector}' is enabled")


async def _check_text_equals(
    page: Page, assertion: Assertion, selector: str, timeout: int,
) -> AssertionResult:
    selector = _require_selector(selector, assertion)
    expected = _require_expected(assertion)
    el = await _wait_for(page, assertion, selector, "attached", timeout)
    text = ((await el.text_content()) or "").strip() if el else ""
    if text != expected.strip():
        raise AssertionCheckError(
            assertion.assertion_type,
            f'Text mismatch. Expected: "{expected}", Found: "{text}"',
            expected=expected,
            actual=text,
        )
    return AssertionResult(True, "Text matches", expected, text)


async def _check_text_contains(
    page: Page, assertion: Assertion, selector: str, timeout: int,
) -> AssertionResult:
    expected = _require_expected(assertion)
    if selector:
        el = await _wait_for(page, assertion, selector, "attached", timeout)
        content = ((await el.text_content()) or "") if el else ""
    else:
        content = (await page.text_content("body")) or ""
    if expected not in content:
        raise AssertionCheckError(
            assertion.assertion_type,
            f'Text does not contain "{expected}". Found: "{content[:200]}"',
            expected=expected,
            actual=content[:200],
        )
    return AssertionResult(True, f"Found '{expected}'", expected)


async def _check_attribute(
    page: Page, assertion: Assertion, selector: str, timeout: int,
) -> AssertionResult:
    selector = _require_selector(selector, assertion)
    if not assertion.attribute:
        raise AssertionCheckError(
            assertion.assertion_type, f"{assertion.assertion_type} assertion requires an attribute name",
        )
    expected = assertion.expected_value or ""
    await _wait_for(page, assertion, selector, "attached", timeout)
    value = await page.get_attribute(selector, assertion.attribute, timeout=timeout)
    if value is None:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"Attribute '{assertion.attribute}' not present on '{selector}'",
            expected=expected,
            actual=None,
        )

    if assertion.assertion_type == AssertionType.ATTRIBUTE_EQUALS:
        passed = value == expected
        verb = "equal"
    else:
        passed = expected in value
        verb = "contain"
    if not passed:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"Attribute '{assertion.attribute}' does not {verb} \"{expected}\". Found: \"{value}\"",
            expected=expected,
            actual=value,
        )
    return AssertionResult(True, f"Attribute '{assertion.attribute}' matches", expected, value)


def _check_url_equals(page: Page, assertion: Assertion) -> AssertionResult:
    current = page.url
    if current != assertion.expected_value:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"URL mismatch. Expected: {assertion.expected_value}, Found: {current}",
            expected=assertion.expected_value,
            actual=current,
        )
    return AssertionResult(True, f"URL matches: {current}", assertion.expected_value, current)


def _check_url_contains(page: Page, assertion: Assertion) -> AssertionResult:
    expected = _require_expected(assertion)
    current = page.url
    if expected not in current:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"URL '{current}' does not contain '{expected}'",
            expected=expected,
            actual=current,
        )
    return AssertionResult(True, f"URL contains '{expected}'", expected, current)


async def _check_page_title(page: Page, assertion: Assertion) -> AssertionResult:
    title = await page.title()
    if title != assertion.expected_value:
        raise AssertionCheckError(
            assertion.assertion_type,
            f'Title mismatch. Expected: "{assertion.expected_value}", Found: "{title}"',
            expected=assertion.expected_value,
            actual=title,
        )
    return AssertionResult(True, f"Title is '{title}'", assertion.expected_value, title)


def _find_logged(entries: list[dict], fragment: str, method: str | None = None) -> dict | None:
    """Most recent logged request/response whose URL contains ``fragment``."""
    for entry in reversed(entries):
        if fragment not in entry["url"]:
            continue
        if method and entry["method"].upper() != method.upper():
            continue
        return entry
    return None


async def _check_http_status(
    page: Page, assertion: Assertion, network_log: NetworkRecorder | None, config: EngineConfig,
) -> AssertionResult:
    # expected_value holds the URL fragment; default is the page's own URL
    fragment = assertion.expected_value or page.url
    accepted = assertion.accepted_statuses or config.accepted_statuses

    entry = _find_logged(network_log.responses, fragment) if network_log else None
    if entry is not None:
        status = entry["status"]
    else:
        try:
            response = await page.wait_for_event(
                "response",
                predicate=lambda r: fragment in r.url,
                timeout=config.assertion_timeout_ms,
            )
        except PlaywrightTimeoutError:
            raise AssertionCheckError(
                assertion.assertion_type,
                f"No response matching '{fragment}' within {config.assertion_timeout_ms}ms",
                expected=accepted,
                actual=None,
            ) from None
        status = response.status

    if status not in accepted:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"HTTP status {status} for '{fragment}' not in accepted statuses {accepted}",
            expected=accepted,
            actual=status,
        )
    return AssertionResult(True, f"HTTP status {status} for '{fragment}'", accepted, status)


async def _check_element_count(page: Page, assertion: Assertion, selector: str) -> AssertionResult:
    selector = _require_selector(selector, assertion)
    raw = _require_expected(assertion)
    try:
        expected = int(raw)
    except ValueError:
        raise AssertionCheckError(
            assertion.assertion_type, f"Expected count '{raw}' is not a number", expected=raw,
        ) from None

    elements = await page.query_selector_all(selector)
    count = len(elements)
    if count != expected:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"Element count mismatch for '{selector}'. Expected: {expected}, Found: {count}",
            expected=expected,
            actual=count,
        )
    return AssertionResult(True, f"Found {count} elements matching '{selector}'", expected, count)


async def _check_network_request(
    page: Page, assertion: Assertion, network_log: NetworkRecorder | None, timeout: int,
) -> AssertionResult:
    fragment = _require_expected(assertion)
    method = assertion.method
    expected = f"{method.upper()} {fragment}" if method else fragment

    entry = _find_logged(network_log.requests, fragment, method) if network_log else None
    if entry is None:
        def matches(request) -> bool:
            return fragment in request.url and (not method or request.method.upper() == method.upper())

        try:
            request = await page.wait_for_event("request", predicate=matches, timeout=timeout)
        except PlaywrightTimeoutError:
            raise AssertionCheckError(
                assertion.assertion_type,
                f"No request matching {expected} within {timeout}ms",
                expected=expected,
                actual=None,
            ) from None
        entry = {"url": request.url, "method": request.method}

    return AssertionResult(True, f"Request made: {entry['method']} {entry['url']}", expected, entry["url"])


async def _check_performance(page: Page, assertion: Assertion, config: EngineConfig) -> AssertionResult:
    threshold = assertion.threshold or config.performance_threshold_ms
    load_time = await page.evaluate(_LOAD_TIME_SCRIPT)
    if load_time is None:
        raise AssertionCheckError(
            assertion.assertion_type, "Navigation timing not available", expected=threshold,
        )
    load_time = round(load_time)
    if load_time > threshold:
        raise AssertionCheckError(
            assertion.assertion_type,
            f"Page load took {load_time}ms, exceeding threshold of {threshold}ms",
            expected=threshold,
            actual=load_time,
        )
    return AssertionResult(True, f"Page loaded in {load_time}ms", threshold, load_time)


async def _check_accessibility(page: Page, assertion: Assertion, timeout: int) -> AssertionResult:
    snapshot = await page.locator("body").aria_snapshot(timeout=timeout)
    if not snapshot or not snapshot.strip():
        raise AssertionCheckError(
            assertion.assertion_type, "Accessibility snapshot is empty", expected="non-empty", actual="",
        )
    nodes = len(snapshot.strip().splitlines())
    return AssertionResult(True, f"Accessibility tree has {nodes} nodes", actual=nodes)
