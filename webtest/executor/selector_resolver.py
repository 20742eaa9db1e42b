"""Selector resolution: turns a Selector descriptor into a Playwright query string."""

from __future__ import annotations

from webtest.models.test_suite import Selector, SelectorType


def build_selector(selector: Selector | None) -> str:
    """Map a Selector onto the driver's query syntax.

    The mapping is total and pure; an absent selector yields ``""`` and an
    unrecognised type yields the raw value.
    """
    if selector is None:
        return ""

    value = selector.value
    match selector.type:
        case SelectorType.ID:
            return f"#{value}"
        case SelectorType.NAME:
            return f'[name="{value}"]'
        case SelectorType.CSS:
            return value
        case SelectorType.XPATH:
            return f"xpath={value}"
        case SelectorType.LINK_TEXT:
            return f"text={value}"
        case SelectorType.CLASS_NAME:
            return f".{value}"
        case SelectorType.TAG_NAME:
            return value
        case _:
            return value
