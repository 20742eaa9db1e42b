"""DOM element extraction: classifies testable elements on a page."""

from __future__ import annotations

import logging

from playwright.async_api import ElementHandle, Page

from webtest.models.site_model import ElementLocation, TestableElement

from .selector_generator import (
    generate_element_identifier,
    generate_unique_selector,
    identifier_from_selector,
)

logger = logging.getLogger(__name__)

MAX_ATTRIBUTE_LENGTH = 1000

FORM_SELECTOR = "form"
FORM_FIELD_SELECTOR = 'input:not([type="submit"]):not([type="button"]), select, textarea'
BUTTON_SELECTOR = (
    'button, input[type="button"], input[type="submit"], a.btn, .button, [role="button"]'
)
NAV_LINK_SELECTOR = "nav a, header a, .navigation a, .menu a, .nav-item a"
INPUT_SELECTOR = 'input:not([type="submit"]):not([type="button"]), textarea, select'

ATTRIBUTES_JS = "(el) => Object.fromEntries(Array.from(el.attributes, a => [a.name, a.value]))"


async def extract_attributes(element: ElementHandle) -> dict[str, str]:
    """All attributes of ``element``, minus any value over 1000 characters."""
    raw = await element.evaluate(ATTRIBUTES_JS)
    return {name: value for name, value in raw.items() if len(value) <= MAX_ATTRIBUTE_LENGTH}


def _rendered(box: dict | None) -> bool:
    return bool(box) and box["width"] > 0 and box["height"] > 0


async def find_forms(page: Page) -> list[TestableElement]:
    elements = []
    for form in await page.query_selector_all(FORM_SELECTOR):
        try:
            box = await form.bounding_box()
            if not _rendered(box):
                continue
            selector = await generate_unique_selector(form)
            fields = await form.query_selector_all(FORM_FIELD_SELECTOR)
            children = [(await generate_unique_selector(f)).selector for f in fields]
            elements.append(TestableElement(
                type="form",
                identifier=identifier_from_selector(selector.selector),
                attributes=await extract_attributes(form),
                location=ElementLocation(**box),
                child_elements=children,
            ))
        except Exception as e:
            logger.warning("Skipping form: %s", e)
    return elements


async def find_buttons(page: Page) -> list[TestableElement]:
    elements = []
    for button in await page.query_selector_all(BUTTON_SELECTOR):
        try:
            box = await button.bounding_box()
            if not _rendered(box) or not await button.is_visible():
                continue
            elements.append(TestableElement(
                type="button",
                identifier=await generate_element_identifier(button),
                attributes=await extract_attributes(button),
                inner_text=(await button.inner_text()).strip(),
                location=ElementLocation(**box),
            ))
        except Exception as e:
            logger.warning("Skipping button: %s", e)
    return elements


async def find_navigation_links(page: Page) -> list[TestableElement]:
    elements = []
    for link in await page.query_selector_all(NAV_LINK_SELECTOR):
        try:
            box = await link.bounding_box()
            if not _rendered(box):
                continue
            selector = await generate_unique_selector(link)
            elements.append(TestableElement(
                type="navigationLink",
                identifier=identifier_from_selector(selector.selector),
                attributes=await extract_attributes(link),
                inner_text=(await link.inner_text()).strip(),
                location=ElementLocation(**box),
            ))
        except Exception as e:
            logger.warning("Skipping navigation link: %s", e)
    return elements


async def find_input_fields(page: Page) -> list[TestableElement]:
    elements = []
    for field in await page.query_selector_all(INPUT_SELECTOR):
        try:
            box = await field.bounding_box()
            if not _rendered(box):
                continue
            selector = await generate_unique_selector(field)
            elements.append(TestableElement(
                type="input",
                identifier=identifier_from_selector(selector.selector),
                attributes=await extract_attributes(field),
                location=ElementLocation(**box),
            ))
        except Exception as e:
            logger.warning("Skipping input: %s", e)
    return elements


async def find_testable_elements(page: Page) -> list[TestableElement]:
    """Forms, then buttons, then navigation links, then inputs."""
    logger.info("Finding testable elements on page")
    elements: list[TestableElement] = []
    elements.extend(await find_forms(page))
    elements.extend(await find_buttons(page))
    elements.extend(await find_navigation_links(page))
    elements.extend(await find_input_fields(page))
    logger.info("Found %d testable elements", len(elements))
    return elements
