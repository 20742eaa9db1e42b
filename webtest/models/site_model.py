"""Discovery output produced by the crawler."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from webtest.models.test_run import WireModel


class ElementIdentifier(WireModel):
    kind: Literal["id", "class"]
    value: str


class ElementLocation(WireModel):
    x: float
    y: float
    width: float
    height: float


class TestableElement(WireModel):
    type: str  # form, button, navigationLink, input
    identifier: ElementIdentifier
    attributes: dict[str, str] = Field(default_factory=dict)
    inner_text: Optional[str] = None
    location: ElementLocation
    child_elements: Optional[list[str]] = None


class SelectorResult(WireModel):
    """A generated selector, flagged when it is only a tag-name fallback."""

    selector: str
    degraded: bool = False
    reason: Optional[str] = None


class CrawlResult(WireModel):
    url: str
    title: str = ""
    elements: list[TestableElement] = Field(default_factory=list)
    timestamp: int  # epoch ms
    screenshot: Optional[str] = None  # base64 JPEG


class CrawlerStats(WireModel):
    memory_usage: int = 0  # bytes, resident set size
    crawl_duration: int = 0  # ms, most recent crawl
    elements_found: int = 0
    error_count: int = 0
