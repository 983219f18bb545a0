"""Long-lived headless browser shared by all requests."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from types import TracebackType
from typing import TYPE_CHECKING, AsyncIterator, Optional

from webscraper.scraper.errors import NavigationError

if TYPE_CHECKING:
    from playwright.async_api import Browser, Page, Playwright

logger = logging.getLogger(__name__)


class BrowserEngine:
    """
    One Chromium process, started once and shared by concurrent requests.

    Each fetch takes its own isolated browser context through :meth:`tab`,
    so cookies and storage never leak between requests.  The context is
    closed on every exit path.

    Example:
        async with BrowserEngine(user_agent="Mozilla/5.0 ...") as engine:
            async with engine.tab() as page:
                await page.goto("https://example.com")
    """

    def __init__(self, user_agent: Optional[str] = None, headless: bool = True) -> None:
        self._user_agent = user_agent
        self._headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def running(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        """Launch the browser.  Calling it on a running engine is a no-op."""
        if self.running:
            return
        # Playwright is imported lazily so the static path and the test suite
        # never need a browser install.
        from playwright.async_api import async_playwright  # noqa: PLC0415

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=["--disable-gpu", "--no-default-browser-check"],
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.info("Headless browser started")

    async def close(self) -> None:
        """Shut the browser down.  Safe to call more than once."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
            logger.info("Headless browser stopped")

    async def __aenter__(self) -> BrowserEngine:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    @asynccontextmanager
    async def tab(self) -> AsyncIterator[Page]:
        """Open an isolated context and page; both are torn down on exit.

        Raises:
            NavigationError: The engine is not running.
        """
        if self._browser is None:
            raise NavigationError("headless browser is not running")

        options = {"user_agent": self._user_agent} if self._user_agent else {}
        context = await self._browser.new_context(**options)
        try:
            page = await context.new_page()
            yield page
        finally:
            await context.close()
