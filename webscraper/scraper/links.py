"""Link resolution and anchor discovery."""

from __future__ import annotations

import logging
import re
from typing import List, Union
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from webscraper.scraper.errors import UnresolvableLink
from webscraper.scraper.models import Link

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _check_parseable(value: str, what: str) -> None:
    if _CONTROL_CHARS.search(value):
        raise UnresolvableLink(f"{what} contains control characters: {value!r}")
    try:
        urlsplit(value).port
    except ValueError as exc:
        raise UnresolvableLink(f"{what} is not a valid URL: {value!r} ({exc})") from exc


def resolve_link(href: str, base: str) -> str:
    """Resolve *href* against the absolute URL *base*.

    An href that already carries a scheme and host is returned unchanged.
    Unusual schemes (``mailto:``, ``javascript:`` …) are passed through;
    filtering them is up to the caller.

    Raises:
        UnresolvableLink: *href* or *base* is structurally invalid, or *base*
            is not absolute.
    """
    href = href.strip()
    _check_parseable(href, "href")
    _check_parseable(base, "base URL")

    parts = urlsplit(href)
    if parts.scheme and parts.netloc:
        return href

    base_parts = urlsplit(base)
    if not base_parts.scheme or not base_parts.netloc:
        raise UnresolvableLink(f"base URL is not absolute: {base!r}")

    return urljoin(base, href)


def extract_links(html: Union[str, BeautifulSoup], base: str) -> List[Link]:
    """Return every ``<a href>`` in *html* as a :class:`Link`, in document order.

    Hrefs are resolved against *base*; links that cannot be resolved are
    skipped.  Duplicates are kept.
    """
    soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
    links: List[Link] = []
    for anchor in soup.find_all("a", href=True):
        try:
            href = resolve_link(anchor["href"], base)
        except UnresolvableLink as exc:
            logger.debug("Skipping link on %s: %s", base, exc)
            continue
        links.append(Link(href=href, text=anchor.get_text().strip()))
    return links
