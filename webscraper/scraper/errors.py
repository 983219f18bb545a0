"""Error taxonomy for the scrape pipeline.

Every error carries a stable machine-readable ``kind`` and the HTTP status the
API layer answers with.  Dynamic-fetch errors never reach the caller on their
own: the orchestrator recovers from them by falling back to the static fetch.
"""

from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base class for all pipeline errors."""

    kind: str = "scraper_error"
    status_code: int = 500

    @property
    def message(self) -> str:
        return str(self)


# ---------------------------------------------------------------------------
# Caller input errors (400)
# ---------------------------------------------------------------------------

class BadRequest(ScraperError):
    kind = "bad_request"
    status_code = 400


class InvalidURL(ScraperError):
    kind = "invalid_url"
    status_code = 400


class InvalidDepth(ScraperError):
    kind = "invalid_depth"
    status_code = 400


# ---------------------------------------------------------------------------
# Fetch strategy errors
# ---------------------------------------------------------------------------

class DynamicFetchError(ScraperError):
    """Headless-browser fetch failed; triggers the static fallback."""

    kind = "dynamic_fetch_failed"


class RenderTimeout(DynamicFetchError):
    kind = "render_timeout"


class NavigationError(DynamicFetchError):
    kind = "navigation_error"


class StaticFetchError(ScraperError):
    kind = "static_fetch_failed"


# ---------------------------------------------------------------------------
# Pipeline errors (500)
# ---------------------------------------------------------------------------

class ParseFailed(ScraperError):
    kind = "parse_failed"


class FetchFailed(ScraperError):
    """Both fetch strategies failed, or the overall timeout expired."""

    kind = "scrape_failed"

    def __init__(
        self,
        message: str,
        dynamic_error: Optional[BaseException] = None,
        static_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.dynamic_error = dynamic_error
        self.static_error = static_error


class UnresolvableLink(ScraperError):
    """An href could not be resolved into an absolute URL."""

    kind = "unresolvable_link"
