"""
Direct Playwright Client
========================

Launches Playwright in-process and hands out exactly one fresh
``BrowserContext`` per connection. A fresh context starts with empty
cookies, localStorage and sessionStorage, which is what gives every test
its isolated browser session.

Usage:
    async with PlaywrightClient(headless=True) as client:
        page = client.page
        await page.goto("http://localhost:3000")
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

logger = logging.getLogger(__name__)

BROWSER_TYPES = ("chromium", "firefox", "webkit")


class PlaywrightClient:
    """
    Owns one Playwright driver, browser, context and page.

    Example:
        client = PlaywrightClient(browser_type="firefox")
        await client.connect()
        try:
            await client.page.goto("https://example.com")
        finally:
            await client.close()
    """

    def __init__(
        self,
        browser_type: str = "chromium",
        headless: bool = True,
        timeout: float = 30.0,
        viewport: Optional[Dict[str, int]] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize Playwright client.

        Args:
            browser_type: Browser to use (chromium, firefox, webkit)
            headless: Run in headless mode
            timeout: Default Playwright action timeout in seconds
            viewport: Optional {"width": ..., "height": ...}
            base_url: Optional base URL for relative ``page.goto`` calls
        """
        if browser_type not in BROWSER_TYPES:
            raise ValueError(f"browser_type must be one of {BROWSER_TYPES}, got {browser_type!r}")
        self.browser_type = browser_type
        self.headless = headless
        self.timeout = timeout
        self.viewport = viewport
        self.base_url = base_url

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Launch the browser and open a fresh context with one page."""
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_type)
        self._browser = await launcher.launch(headless=self.headless)

        context_options: Dict[str, object] = {}
        if self.viewport:
            context_options["viewport"] = self.viewport
        if self.base_url:
            context_options["base_url"] = self.base_url
        self._context = await self._browser.new_context(**context_options)
        self._context.set_default_timeout(self.timeout * 1000)

        self._page = await self._context.new_page()
        logger.debug("Launched %s (headless=%s)", self.browser_type, self.headless)

    async def close(self) -> None:
        """Close page, context, browser and driver, in that order.

        Every step runs even if an earlier one fails; the first failure is
        re-raised once everything has been released.
        """
        first_error: Optional[BaseException] = None
        for name in ("_page", "_context", "_browser"):
            resource = getattr(self, name)
            setattr(self, name, None)
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as exc:
                logger.warning("Error closing %s: %s", name.lstrip("_"), exc)
                first_error = first_error or exc

        if self._playwright:
            playwright, self._playwright = self._playwright, None
            try:
                await playwright.stop()
            except Exception as exc:
                logger.warning("Error stopping Playwright: %s", exc)
                first_error = first_error or exc

        if first_error is not None:
            raise first_error

    @property
    def connected(self) -> bool:
        return self._page is not None

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")
        return self._browser

    @property
    def context(self) -> BrowserContext:
        if not self._context:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")
        return self._context

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Client not connected or page not created")
        return self._page
