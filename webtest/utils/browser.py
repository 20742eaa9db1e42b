"""Browser lifecycle: launching Chromium and handing out isolated pages."""

from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from webtest.errors import DriverNotStartedError
from webtest.executor.recovery import retry_async
from webtest.models.config import BrowserConfig, RetryConfig

logger = logging.getLogger(__name__)


async def launch_browser(playwright: Playwright, config: BrowserConfig) -> Browser:
    """Launch Chromium with the configured headless mode."""
    return await playwright.chromium.launch(
        headless=config.headless,
        timeout=config.launch_timeout_ms,
    )


async def create_context(browser: Browser, config: BrowserConfig) -> BrowserContext:
    """Create a browser context with the configured viewport and user agent."""
    return await browser.new_context(
        viewport=config.viewport.model_dump(),
        user_agent=config.user_agent,
        locale="en-US",
    )


class BrowserManager:
    """Owns one Playwright driver and one browser for an orchestration run.

    ``start()`` and ``shutdown()`` are idempotent. Launch and context creation
    are retried according to ``retry``.
    """

    def __init__(self, config: BrowserConfig | None = None, retry: RetryConfig | None = None):
        self.config = config or BrowserConfig()
        self.retry = retry or RetryConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    @property
    def browser(self) -> Browser:
        if self._browser is None:
            raise DriverNotStartedError()
        return self._browser

    async def start(self) -> None:
        if self._browser is not None:
            return
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        playwright = self._playwright
        try:
            self._browser = await retry_async(
                lambda: launch_browser(playwright, self.config), self.retry, "Browser launch",
            )
        except Exception:
            await self.shutdown()
            raise
        logger.info("Browser started (headless=%s)", self.config.headless)

    async def shutdown(self) -> None:
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("Error closing browser: %s", e)
        if playwright is not None:
            await playwright.stop()
            logger.info("Browser stopped")

    async def restart(self, delay_ms: int = 0) -> None:
        """Close the browser, wait ``delay_ms``, then launch a fresh one."""
        logger.info("Restarting browser...")
        await self.shutdown()
        if delay_ms:
            await asyncio.sleep(delay_ms / 1000)
        await self.start()

    async def new_context(self) -> BrowserContext:
        browser = self.browser
        return await retry_async(
            lambda: create_context(browser, self.config), self.retry, "Context creation",
        )

    async def new_page(self, context: BrowserContext | None = None) -> Page:
        """Open a page in ``context``, or in a fresh context of its own."""
        if context is not None:
            return await retry_async(context.new_page, self.retry, "Page creation")
        browser = self.browser
        return await retry_async(
            lambda: browser.new_page(
                viewport=self.config.viewport.model_dump(),
                user_agent=self.config.user_agent,
                locale="en-US",
            ),
            self.retry,
            "Page creation",
        )

    async def __aenter__(self) -> "BrowserManager":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.shutdown()
