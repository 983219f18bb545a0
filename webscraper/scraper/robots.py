"""robots.txt compliance checks for the static crawler."""

from __future__ import annotations

import logging
from typing import Dict, Optional
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import httpx

logger = logging.getLogger(__name__)


class RobotsPolicy:
    """
    Answers "may this URL be fetched?" from each host's robots.txt.

    One parsed robots.txt is cached per host for the lifetime of the policy,
    which is a single scrape call.  A missing, forbidden or unreachable
    robots.txt allows everything.

    Example:
        async with httpx.AsyncClient() as client:
            policy = RobotsPolicy(client, user_agent="Mozilla/5.0 ...")
            if await policy.is_allowed("https://example.com/page"):
                ...
    """

    def __init__(self, client: httpx.AsyncClient, user_agent: str) -> None:
        self._client = client
        self.user_agent = user_agent
        self._cache: Dict[str, Optional[RobotFileParser]] = {}

    @staticmethod
    def robots_url(url: str) -> str:
        parts = urlsplit(url)
        return f"{parts.scheme}://{parts.netloc}/robots.txt"

    async def _fetch(self, host: str, robots_url: str) -> Optional[RobotFileParser]:
        try:
            response = await self._client.get(
                robots_url, headers={"User-Agent": self.user_agent}
            )
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch robots.txt for %s: %s", host, exc)
            return None

        if response.status_code != 200:
            logger.debug("No robots.txt for %s (status %s)", host, response.status_code)
            return None

        parser = RobotFileParser()
        parser.parse(response.text.splitlines())
        logger.debug("Loaded robots.txt for %s", host)
        return parser

    async def is_allowed(self, url: str) -> bool:
        """Return ``False`` only when the host's robots.txt disallows *url*."""
        host = urlsplit(url).netloc
        if host not in self._cache:
            self._cache[host] = await self._fetch(host, self.robots_url(url))
        parser = self._cache[host]
        if parser is None:
            return True
        return parser.can_fetch(self.user_agent, url)
