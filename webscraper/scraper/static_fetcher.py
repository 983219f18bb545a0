"""Static (non-rendering) fetch: plain HTTP requests plus a bounded crawl."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple
from urllib.parse import urldefrag, urlsplit

import httpx

from webscraper.config import Settings
from webscraper.scraper.errors import StaticFetchError
from webscraper.scraper.links import extract_links
from webscraper.scraper.models import Link, Static
from webscraper.scraper.robots import RobotsPolicy

logger = logging.getLogger(__name__)

# Time kept free after the crawl for parsing and conversion.
DEADLINE_MARGIN_S = 1.0


class DomainThrottle:
    """
    Enforces a minimum delay, plus random jitter, between requests to a host.

    The first request to a host goes out immediately.  State lives for one
    fetch call only.
    """

    def __init__(self, delay: float, jitter: float = 0.0) -> None:
        self.delay = max(delay, 0.0)
        self.jitter = max(jitter, 0.0)
        self._last_request: Dict[str, float] = {}

    async def wait(self, url: str) -> None:
        host = urlsplit(url).netloc
        last = self._last_request.get(host)
        if last is not None:
            pause = self.delay + random.uniform(0, self.jitter) - (time.monotonic() - last)
            if pause > 0:
                logger.debug("Throttling %s for %.2fs", host, pause)
                await asyncio.sleep(pause)
        self._last_request[host] = time.monotonic()


def _is_html(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type")
    return content_type is None or "html" in content_type.lower()


def _crawlable(url: str, host: str) -> bool:
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and parts.netloc == host


class StaticFetcher:
    """
    Fetch a page over plain HTTP and discover its links.

    With ``depth > 1`` the fetcher also crawls same-host links breadth-first,
    one request at a time, up to *depth* levels.  Only the requested page's
    body is returned; deeper pages contribute their links.

    Example:
        fetcher = StaticFetcher(settings)
        outcome = await fetcher.fetch("https://example.com", depth=2)
        outcome.html, outcome.links
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _user_agent(self) -> str:
        agents = self._settings.user_agents
        return random.choice(agents) if agents else self._settings.primary_user_agent

    async def _visit(
        self,
        client: httpx.AsyncClient,
        throttle: DomainThrottle,
        robots: Optional[RobotsPolicy],
        page_url: str,
        is_start: bool,
    ) -> Optional[httpx.Response]:
        """GET one page; ``None`` when robots.txt keeps a deeper page out."""
        if not is_start and robots is not None and not await robots.is_allowed(page_url):
            logger.debug("robots.txt disallows %s; not crawling it", page_url)
            return None

        await throttle.wait(page_url)
        try:
            return await client.get(page_url)
        except httpx.HTTPError as exc:
            raise StaticFetchError(f"request to {page_url} failed: {exc}") from exc

    async def fetch(
        self,
        url: str,
        depth: int = 1,
        robots: Optional[RobotsPolicy] = None,
        deadline: Optional[float] = None,
    ) -> Static:
        """Fetch *url* (and crawl to *depth*) and return a :class:`Static` outcome.

        Args:
            url: The requested page.
            depth: Number of levels to crawl; ``1`` fetches *url* only.
            robots: robots.txt policy shared with the caller.  When omitted
                and robots.txt is honoured, the fetcher builds its own.
            deadline: ``time.monotonic()`` value the crawl must be done by.
                Deeper pages are only fetched while they can finish
                :data:`DEADLINE_MARGIN_S` before it; otherwise the crawl stops
                and the outcome is marked ``truncated``.  The requested page
                is always fetched.

        Raises:
            StaticFetchError: A transport error occurred anywhere in the crawl,
                or the requested page answered with a non-2xx status.
        """
        user_agent = self._user_agent()
        throttle = DomainThrottle(
            self._settings.scraper_delay, self._settings.scraper_delay_jitter
        )
        start_host = urlsplit(url).netloc
        visited = {urldefrag(url)[0]}
        queue: Deque[Tuple[str, int]] = deque([(url, 1)])
        links: List[Link] = []
        html = ""
        truncated = False

        async with httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            timeout=self._settings.request_timeout,
            follow_redirects=True,
        ) as client:
            if robots is None and not self._settings.ignore_robots:
                robots = RobotsPolicy(client, user_agent)

            while queue:
                page_url, level = queue.popleft()
                is_start = level == 1

                if is_start or deadline is None:
                    response = await self._visit(client, throttle, robots, page_url, is_start)
                else:
                    remaining = deadline - time.monotonic() - DEADLINE_MARGIN_S
                    try:
                        if remaining <= 0:
                            raise asyncio.TimeoutError
                        response = await asyncio.wait_for(
                            self._visit(client, throttle, robots, page_url, is_start),
                            remaining,
                        )
                    except asyncio.TimeoutError:
                        logger.info("Out of time; stopping crawl of %s at %s", url, page_url)
                        truncated = True
                        break

                if response is None:
                    continue

                if not response.is_success:
                    if is_start:
                        raise StaticFetchError(
                            f"{page_url} returned HTTP {response.status_code}"
                        )
                    logger.info("Skipping %s (HTTP %s)", page_url, response.status_code)
                    continue

                if is_start:
                    html = response.text
                if not _is_html(response):
                    continue

                # Resolve against the responding URL; redirects may have moved us.
                page_links = extract_links(response.text, str(response.url))
                links.extend(page_links)

                if level < depth:
                    for link in page_links:
                        target = urldefrag(link.href)[0]
                        if target not in visited and _crawlable(target, start_host):
                            visited.add(target)
                            queue.append((target, level + 1))

        logger.debug(
            "Static fetch of %s queued %d page(s), found %d link(s)",
            url, len(visited), len(links),
        )
        return Static(html=html, links=tuple(links), truncated=truncated)
