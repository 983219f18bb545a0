"""Scrape endpoint.

Routes
------
GET /scrape?url=<absolute-url>&depth=<positive-int, default 1>

``depth`` only bounds the static crawler used when the headless browser
fails; the response always describes the requested page alone.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from webscraper.scraper.errors import BadRequest
from webscraper.scraper.service import ScraperService

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class LinkResponse(BaseModel):
    href: str
    text: str


class ScrapeResponse(BaseModel):
    title: str
    rawHtml: str
    markdown: str
    links: List[LinkResponse]
    warnings: List[str]
    fetchedAt: datetime


class ErrorResponse(BaseModel):
    error: str
    message: str


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.get(
    "/scrape",
    response_model=ScrapeResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def scrape(
    request: Request,
    url: Optional[str] = None,
    depth: Optional[str] = None,
) -> dict[str, Any]:
    """Fetch *url*, list its links and convert its main content to Markdown.

    Args:
        url: Absolute http(s) URL of the page.
        depth: Crawl depth for the static fallback (positive integer).
    """
    if not url:
        raise BadRequest("URL parameter is required")

    scraper: ScraperService = request.app.state.scraper
    result = await scraper.scrape(url, depth)
    return result.to_dict()
