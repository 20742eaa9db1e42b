"""Unique-selector generation for discovered DOM nodes."""

from __future__ import annotations

import logging

from playwright.async_api import ElementHandle

from webtest.models.site_model import ElementIdentifier, SelectorResult

logger = logging.getLogger(__name__)

# id, then tag[name], then tag.classes, then a positional path from <body>.
UNIQUE_SELECTOR_JS = """(el) => {
    if (el.id) {
        return `#${el.id}`;
    }

    const tag = el.tagName.toLowerCase();

    const name = el.getAttribute('name');
    if (name) {
        return `${tag}[name="${name}"]`;
    }

    if (el.className && typeof el.className === 'string') {
        const classes = el.className.trim().split(/\\s+/).filter(Boolean);
        if (classes.length > 0) {
            return `${tag}.${classes.join('.')}`;
        }
    }

    let path = '';
    let current = el;
    while (current !== document.body && current.parentElement) {
        let index = 1;
        let sibling = current;
        while ((sibling = sibling.previousElementSibling)) {
            if (sibling.tagName === current.tagName) {
                index++;
            }
        }
        const segment = `${current.tagName.toLowerCase()}:nth-of-type(${index})`;
        path = path ? `${segment} > ${path}` : segment;
        current = current.parentElement;
    }

    return path ? `body > ${path}` : tag;
}"""

TAG_NAME_JS = "(el) => el.tagName.toLowerCase()"

ELEMENT_IDENTIFIER_JS = """(el) => {
    if (el.id) {
        return { kind: 'id', value: el.id };
    }
    if (el.className && typeof el.className === 'string') {
        const classes = el.className.trim().split(/\\s+/).filter(Boolean);
        if (classes.length > 0) {
            return { kind: 'class', value: classes.join(' ') };
        }
    }
    return { kind: 'class', value: '' };
}"""


async def generate_unique_selector(element: ElementHandle) -> SelectorResult:
    """Most specific stable selector for ``element``.

    Never raises. If the node cannot be evaluated (detached, cross-origin)
    the result is the bare tag name, or ``*`` when even that is unreadable,
    with ``degraded`` set.
    """
    try:
        return SelectorResult(selector=await element.evaluate(UNIQUE_SELECTOR_JS))
    except Exception as e:
        reason = str(e)

    logger.warning("Selector generation failed, falling back to tag name: %s", reason)
    try:
        tag = await element.evaluate(TAG_NAME_JS)
    except Exception as e:
        logger.warning("Could not read tag name: %s", e)
        tag = "*"
    return SelectorResult(selector=tag, degraded=True, reason=reason)


async def generate_element_identifier(element: ElementHandle) -> ElementIdentifier:
    raw = await element.evaluate(ELEMENT_IDENTIFIER_JS)
    return ElementIdentifier(kind=raw["kind"], value=raw["value"])


def identifier_from_selector(selector: str) -> ElementIdentifier:
    """``#foo`` becomes an id identifier; anything else is treated as a class."""
    if selector.startswith("#"):
        return ElementIdentifier(kind="id", value=selector[1:])
    return ElementIdentifier(kind="class", value=selector.lstrip("."))
