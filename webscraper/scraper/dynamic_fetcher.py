"""Dynamic fetch: render the page in the shared headless browser."""

from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from webscraper.scraper.browser import BrowserEngine
from webscraper.scraper.errors import NavigationError, RenderTimeout

logger = logging.getLogger(__name__)

_OUTER_HTML = "element => element.outerHTML"


class DynamicFetcher:
    """
    Load a URL in a fresh browser tab and capture the rendered HTML.

    Sequence: navigate, wait for ``<body>`` to exist, wait for it to be
    visible, pause *settle_delay* seconds for late scripts, then serialise
    the ``<html>`` element.  The whole sequence shares one *timeout*.
    """

    def __init__(
        self,
        engine: BrowserEngine,
        timeout: float = 10.0,
        settle_delay: float = 2.0,
    ) -> None:
        self._engine = engine
        self._timeout = timeout
        self._settle_delay = settle_delay

    async def _render(self, page: Page, url: str) -> str:
        timeout_ms = self._timeout * 1000
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        await page.wait_for_selector("body", state="attached", timeout=timeout_ms)
        await page.wait_for_selector("body", state="visible", timeout=timeout_ms)
        await asyncio.sleep(self._settle_delay)
        return await page.eval_on_selector("html", _OUTER_HTML)

    async def _fetch_in_tab(self, url: str) -> str:
        async with self._engine.tab() as page:
            return await self._render(page, url)

    async def fetch(self, url: str) -> str:
        """Render *url* and return its outer HTML.

        Raises:
            RenderTimeout: Any step ran past the per-attempt timeout.
            NavigationError: The browser could not load the page.
        """
        try:
            html = await asyncio.wait_for(self._fetch_in_tab(url), timeout=self._timeout)
        except (asyncio.TimeoutError, PlaywrightTimeoutError) as exc:
            raise RenderTimeout(
                f"rendering {url} exceeded {self._timeout:g}s"
            ) from exc
        except PlaywrightError as exc:
            raise NavigationError(f"browser could not load {url}: {exc.message}") from exc

        logger.debug("Rendered %s (%d bytes of HTML)", url, len(html))
        return html
