"""Step executor: translates Step models to Playwright calls."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from webtest.errors import (
    MissingSelectorError,
    MissingValueError,
    StepExecutionError,
    UnsupportedActionError,
)
from webtest.models.config import EngineConfig
from webtest.models.test_suite import Action, Step, TestData
from webtest.url_utils import validate_url

from .selector_resolver import build_selector

logger = logging.getLogger(__name__)

# Submits the element's owning form, or the element itself when it is a form.
_SUBMIT_SCRIPT = "el => (el.form || el).requestSubmit()"


def _lookup(data: TestData | None, key: str, use_valid: bool) -> object | None:
    if data is None:
        return None
    source = data.valid if use_valid else (data.invalid or {})
    return source.get(key)


def resolve_step_value(step: Step, case_test_data: TestData | None = None) -> str | None:
    """Return the literal step value, else the referenced test-data fixture.

    Fixtures are looked up by ``data_key`` in the step's own test data first,
    then the test case's, picking the ``valid`` or ``invalid`` map according
    to ``use_valid_data`` (``invalid`` unless the flag is set). A missing or
    empty fixture yields None.
    """
    if step.value:
        return step.value
    if not step.data_key:
        return None
    value = _lookup(step.test_data, step.data_key, step.use_valid_data)
    if value is None:
        value = _lookup(case_test_data, step.data_key, step.use_valid_data)
    if value is None or str(value) == "":
        return None
    return str(value)


def _require_selector(selector: str, step: Step) -> str:
    if not selector:
        raise MissingSelectorError(step.action, step.step_id)
    return selector


async def _dispatch(
    page: Page, step: Step, selector: str, value: str | None, config: EngineConfig,
) -> None:
    timeout = step.timeout or config.action_timeout_ms

    match step.action:
        case Action.NAVIGATE:
            url = validate_url(value) if value else page.url
            logger.debug("Navigating to %s...", url)
            await page.goto(url, timeout=timeout)

        case Action.CLICK:
            await page.click(_require_selector(selector, step), timeout=timeout)

        case Action.HOVER:
            await page.hover(_require_selector(selector, step), timeout=timeout)

        case Action.CHECK:
            await page.check(_require_selector(selector, step), timeout=timeout)

        case Action.UNCHECK:
            await page.uncheck(_require_selector(selector, step), timeout=timeout)

        case Action.CLEAR:
            await page.fill(_require_selector(selector, step), "", timeout=timeout)

        case Action.SUBMIT:
            target = _require_selector(selector, step)
            await page.wait_for_selector(target, state="attached", timeout=timeout)
            await page.eval_on_selector(target, _SUBMIT_SCRIPT)

        case Action.TYPE:
            if value is None:
                raise MissingValueError(step.action, step.step_id)
            target = _require_selector(selector, step)
            logger.debug("Filling %s with '%s'", target,
                         "***" if "password" in target.lower() else value)
            await page.fill(target, value, timeout=timeout)

        case Action.SELECT:
            if value is None:
                raise MissingValueError(step.action, step.step_id)
            await page.select_option(_require_selector(selector, step), value, timeout=timeout)

        case Action.WAIT:
            wait_ms = step.timeout or config.wait_default_ms
            logger.debug("Waiting %sms...", wait_ms)
            await page.wait_for_timeout(wait_ms)

        case Action.SCREENSHOT | Action.ASSERT:
            raise UnsupportedActionError(step.action)

        case _:
            raise UnsupportedActionError(str(step.action))

    if step.wait_for_navigation:
        logger.debug("Waiting for network idle after %s", step.step_id)
        await page.wait_for_load_state("networkidle", timeout=timeout)


async def run_step(
    page: Page,
    step: Step,
    test_data: TestData | None = None,
    config: EngineConfig | None = None,
) -> None:
    """Execute a single step on the page.

    Every failure is re-raised as StepExecutionError carrying the step id;
    the original exception is available as ``cause``.
    """
    config = config or EngineConfig()
    selector = build_selector(step.selector)
    value = resolve_step_value(step, test_data)

    logger.debug("Running step %s: %s | selector=%s | %s",
                 step.step_id, step.action, selector or "-", step.expected_result)
    try:
        await _dispatch(page, step, selector, value, config)
    except Exception as e:
        raise StepExecutionError(step.step_id, e) from e
