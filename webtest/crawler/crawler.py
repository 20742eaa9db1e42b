"""Element discovery crawler: loads a page and catalogs its testable elements."""

from __future__ import annotations

import base64
import logging
import time

from webtest.errors import InvalidUrlError
from webtest.executor.recovery import MemoryMonitor, retry_async
from webtest.models.config import EngineConfig
from webtest.models.site_model import CrawlerStats, CrawlResult
from webtest.url_utils import validate_url
from webtest.utils.browser import BrowserManager

from .element_extractor import find_testable_elements

logger = logging.getLogger(__name__)


class Crawler:
    """Discovers testable elements on single pages.

    Owns its browser: call ``start()`` / ``shutdown()`` or use it as an
    async context manager. ``crawl_page`` starts the browser on demand.
    """

    def __init__(self, config: EngineConfig | None = None, browser_manager: BrowserManager | None = None):
        self.config = config or EngineConfig()
        self.browser_manager = browser_manager or BrowserManager(self.config.browser, self.config.retry)
        self.memory = MemoryMonitor(self.config.memory)
        self._crawl_duration = 0
        self._elements_found = 0
        self._error_count = 0

    async def start(self) -> None:
        await self.browser_manager.start()

    async def shutdown(self) -> None:
        await self.browser_manager.shutdown()

    async def __aenter__(self) -> "Crawler":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.shutdown()

    async def crawl_page(self, url: str) -> CrawlResult:
        """Load ``url`` in a fresh context and classify its elements.

        Malformed URLs raise InvalidUrlError before any browser work.
        Navigation is retried; the context is closed on every path.
        """
        try:
            validate_url(url)
        except InvalidUrlError:
            self._error_count += 1
            raise

        await self.start()
        logger.info("Crawling URL: %s", url)
        start = time.perf_counter()
        context = await self.browser_manager.new_context()
        try:
            page = await context.new_page()
            await retry_async(
                lambda: page.goto(url, wait_until="networkidle", timeout=self.config.action_timeout_ms),
                self.config.retry,
                f"Navigation to {url}",
            )
            title = await page.title()
            screenshot = await page.screenshot(type="jpeg", quality=80)
            elements = await find_testable_elements(page)
        except Exception as e:
            self._error_count += 1
            logger.error("Crawl of %s failed: %s", url, e)
            raise
        finally:
            await context.close()
            self._crawl_duration = round((time.perf_counter() - start) * 1000)

        self._elements_found = len(elements)
        logger.info("Crawled %s: %d elements (%dms)", url, len(elements), self._crawl_duration)
        return CrawlResult(
            url=url,
            title=title,
            elements=elements,
            timestamp=int(time.time() * 1000),
            screenshot=base64.b64encode(screenshot).decode("ascii"),
        )

    def get_stats(self) -> CrawlerStats:
        return CrawlerStats(
            memory_usage=self.memory.sample(),
            crawl_duration=self._crawl_duration,
            elements_found=self._elements_found,
            error_count=self._error_count,
        )
