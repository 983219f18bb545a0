"""Data models for the scraper pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Tuple, Union
from urllib.parse import urlsplit

from webscraper.scraper.errors import InvalidDepth, InvalidURL

_ALLOWED_SCHEMES = ("http", "https")

_INVALID_URL_MESSAGE = "URL must be a valid HTTP or HTTPS URL"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# ASCII characters allowed in a host: unreserved, sub-delims, percent
# escapes and the IPv6 colon.  Non-ASCII (IDN) hosts are accepted.
_BAD_HOST_CHARS = re.compile(r"[^A-Za-z0-9\-._~!$&'()*+,;=%:\x80-\U0010ffff]")


@dataclass(frozen=True)
class ScrapeRequest:
    """A validated scrape request: one absolute http(s) URL plus crawl depth."""

    url: str
    depth: int = 1

    @classmethod
    def from_params(
        cls, url: str, depth: Union[int, str, None] = None
    ) -> ScrapeRequest:
        """Validate raw query parameters and build a request.

        Raises:
            InvalidURL: *url* does not parse, is not http/https, or has no host.
            InvalidDepth: *depth* is not a positive integer.
        """
        return cls(url=_validate_url(url), depth=_validate_depth(depth))

    @property
    def host(self) -> str:
        """Host component of the URL (with port, without credentials)."""
        return urlsplit(self.url).netloc.rpartition("@")[2]


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if _CONTROL_CHARS.search(url):
        raise InvalidURL(_INVALID_URL_MESSAGE)
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a malformed port
    except ValueError as exc:
        raise InvalidURL(_INVALID_URL_MESSAGE) from exc
    if parts.scheme.lower() not in _ALLOWED_SCHEMES or not parts.hostname:
        raise InvalidURL(_INVALID_URL_MESSAGE)
    if _BAD_HOST_CHARS.search(parts.hostname):
        raise InvalidURL(_INVALID_URL_MESSAGE)
    return url


def _validate_depth(depth: Union[int, str, None]) -> int:
    if depth is None or depth == "":
        return 1
    if isinstance(depth, bool):
        raise InvalidDepth("Depth must be a positive integer")
    if isinstance(depth, str):
        digits = depth.strip()
        if not (digits.isascii() and digits.isdigit()):
            raise InvalidDepth("Depth must be a positive integer")
        depth = int(digits)
    if not isinstance(depth, int) or depth < 1:
        raise InvalidDepth("Depth must be a positive integer")
    return depth


@dataclass(frozen=True)
class Link:
    """A hyperlink discovered on a page; ``href`` is always absolute."""

    href: str
    text: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"href": self.href, "text": self.text}


@dataclass(frozen=True)
class ScrapeResult:
    """Final result of one scrape call.  Never mutated after it is returned."""

    title: str
    raw_html: str
    markdown: str
    fetched_at: datetime
    links: Tuple[Link, ...] = ()
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase JSON wire shape."""
        return {
            "title": self.title,
            "rawHtml": self.raw_html,
            "markdown": self.markdown,
            "links": [link.to_dict() for link in self.links],
            "warnings": list(self.warnings),
            "fetchedAt": self.fetched_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# FetchOutcome: what the two fetch strategies hand back to the orchestrator
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rendered:
    """The headless browser rendered the page; links are extracted later."""

    html: str
    links: Tuple[Link, ...] = ()
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class Static:
    """The static crawler fetched the page and discovered links inline.

    ``truncated`` is set when the crawl stopped before reaching its depth
    because the scrape was running out of time.
    """

    html: str
    links: Tuple[Link, ...] = ()
    error: Optional[BaseException] = None
    truncated: bool = False


@dataclass(frozen=True)
class BothFailed:
    """Neither strategy produced HTML."""

    dynamic_error: BaseException
    static_error: BaseException
    html: str = ""
    links: Tuple[Link, ...] = field(default=())

    @property
    def error(self) -> BaseException:
        return self.static_error


FetchOutcome = Union[Rendered, Static, BothFailed]
