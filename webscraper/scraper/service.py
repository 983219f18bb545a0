"""Scrape orchestration: dynamic fetch, static fallback, parse, convert.

``ScraperService.scrape`` runs the full pipeline for one URL:

    validate → render (fallback: static crawl) → parse → title → markdown

Everything after validation runs under the overall scrape timeout; when it
expires the in-flight network call or browser wait is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Union

import httpx
from bs4 import BeautifulSoup

from webscraper.config import Settings
from webscraper.scraper.browser import BrowserEngine
from webscraper.scraper.dynamic_fetcher import DynamicFetcher
from webscraper.scraper.errors import (
    DynamicFetchError,
    FetchFailed,
    ParseFailed,
    StaticFetchError,
)
from webscraper.scraper.links import extract_links
from webscraper.scraper.markdown import convert_to_markdown
from webscraper.scraper.models import (
    BothFailed,
    FetchOutcome,
    Rendered,
    ScrapeRequest,
    ScrapeResult,
)
from webscraper.scraper.robots import RobotsPolicy
from webscraper.scraper.static_fetcher import StaticFetcher

logger = logging.getLogger(__name__)

EMPTY_HTML_WARNING = "Captured HTML was empty"
CRAWL_TRUNCATED_WARNING = (
    "Static crawl stopped before reaching the requested depth: "
    "the overall timeout was close"
)


class ScraperService:
    """
    Produces a :class:`ScrapeResult` for one URL.

    The browser engine is created and started by the caller (the API
    lifespan or the CLI) and handed in here; the service never starts or
    stops it.
    """

    def __init__(
        self,
        settings: Settings,
        engine: BrowserEngine,
        static_fetcher: Optional[StaticFetcher] = None,
        dynamic_fetcher: Optional[DynamicFetcher] = None,
    ) -> None:
        self._settings = settings
        self._static = static_fetcher or StaticFetcher(settings)
        self._dynamic = dynamic_fetcher or DynamicFetcher(
            engine,
            timeout=settings.render_timeout,
            settle_delay=settings.render_settle_delay,
        )

    # ------------------------------------------------------------------
    # Fetch strategies
    # ------------------------------------------------------------------

    async def fetch(
        self,
        request: ScrapeRequest,
        warnings: List[str],
        robots: Optional[RobotsPolicy] = None,
        deadline: Optional[float] = None,
    ) -> FetchOutcome:
        """Try the headless browser, then the static crawler.

        Each strategy runs at most once.  A dynamic failure is recorded in
        *warnings*; if the static crawl fails as well the outcome is
        :class:`BothFailed`.  *robots* and *deadline* are handed to the
        static crawler.
        """
        try:
            html = await self._dynamic.fetch(request.url)
        except DynamicFetchError as dynamic_error:
            logger.warning("Dynamic fetch failed for %s: %s", request.url, dynamic_error)
            warnings.append(
                f"Dynamic render failed ({dynamic_error}), falling back to static fetch"
            )
            try:
                outcome = await self._static.fetch(
                    request.url, request.depth, robots=robots, deadline=deadline
                )
            except StaticFetchError as static_error:
                logger.error("Static fetch also failed for %s: %s", request.url, static_error)
                return BothFailed(dynamic_error=dynamic_error, static_error=static_error)
            if outcome.truncated:
                warnings.append(CRAWL_TRUNCATED_WARNING)
            return outcome

        links = extract_links(html, request.url) if html else []
        return Rendered(html=html, links=tuple(links))

    async def _check_robots(
        self, request: ScrapeRequest, robots: RobotsPolicy, warnings: List[str]
    ) -> None:
        if not await robots.is_allowed(request.url):
            warnings.append(
                f"robots.txt disallows {request.url}; "
                "fetched because it was requested explicitly"
            )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def scrape(self, url: str, depth: Union[int, str, None] = 1) -> ScrapeResult:
        """Scrape *url* and return a fresh :class:`ScrapeResult`.

        Raises:
            InvalidURL: *url* is not an absolute http(s) URL.
            InvalidDepth: *depth* is not a positive integer.
            FetchFailed: Both strategies failed or the overall timeout expired.
            ParseFailed: The captured HTML could not be parsed.
        """
        fetched_at = datetime.now(timezone.utc)
        request = ScrapeRequest.from_params(url, depth)
        started = time.monotonic()
        logger.info("Scraping %s (depth=%d)", request.url, request.depth)

        timeout = self._settings.scrape_timeout
        try:
            result = await asyncio.wait_for(
                self._run(request, fetched_at, started + timeout), timeout=timeout
            )
        except asyncio.TimeoutError as exc:
            logger.error("Scrape of %s exceeded %gs", request.url, timeout)
            raise FetchFailed(
                f"scraping {request.url} exceeded the overall timeout of {timeout:g}s"
            ) from exc

        logger.info(
            "Scraped %s in %.2fs: %d link(s), %d warning(s)",
            request.url,
            time.monotonic() - started,
            len(result.links),
            len(result.warnings),
        )
        return result

    async def _run(
        self, request: ScrapeRequest, fetched_at: datetime, deadline: float
    ) -> ScrapeResult:
        warnings: List[str] = []

        if self._settings.ignore_robots:
            outcome = await self.fetch(request, warnings, deadline=deadline)
        else:
            # One robots.txt lookup per host serves the check below and the crawl.
            async with httpx.AsyncClient(
                timeout=self._settings.request_timeout, follow_redirects=True
            ) as client:
                robots = RobotsPolicy(client, self._settings.primary_user_agent)
                await self._check_robots(request, robots, warnings)
                outcome = await self.fetch(request, warnings, robots, deadline)

        if isinstance(outcome, BothFailed):
            raise FetchFailed(
                f"scraping failed: dynamic fetch: {outcome.dynamic_error}; "
                f"static fetch: {outcome.static_error}",
                dynamic_error=outcome.dynamic_error,
                static_error=outcome.static_error,
            ) from outcome.static_error

        strategy = "dynamic" if isinstance(outcome, Rendered) else "static"
        logger.debug("Using %s HTML for %s", strategy, request.url)

        html = outcome.html
        if not html:
            logger.warning("Empty HTML captured for %s", request.url)
            warnings.append(EMPTY_HTML_WARNING)

        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as exc:
            raise ParseFailed(f"failed to parse HTML from {request.url}: {exc}") from exc

        title_tag = soup.find("title")
        title = title_tag.get_text().strip() if title_tag is not None else ""

        return ScrapeResult(
            title=title or request.host,
            raw_html=html,
            markdown=convert_to_markdown(soup),
            links=outcome.links,
            warnings=tuple(warnings),
            fetched_at=fetched_at,
        )

