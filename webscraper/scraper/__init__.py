"""Scraper package: fetch, link discovery, and Markdown conversion."""

from webscraper.scraper.browser import BrowserEngine
from webscraper.scraper.links import extract_links, resolve_link
from webscraper.scraper.markdown import convert_to_markdown, html_to_markdown
from webscraper.scraper.models import Link, ScrapeRequest, ScrapeResult
from webscraper.scraper.service import ScraperService

__all__ = [
    "BrowserEngine",
    "ScraperService",
    "ScrapeRequest",
    "ScrapeResult",
    "Link",
    "resolve_link",
    "extract_links",
    "convert_to_markdown",
    "html_to_markdown",
]
