"""FastAPI application factory.

Lifespan
--------
On startup the app launches the single headless browser shared by every
request (``request.app.state.scraper`` wraps it).  If the browser cannot be
launched the service still starts and every scrape uses the static fetch.
On shutdown the browser is closed exactly once.

Routes
------
    GET /          plain-text liveness message
    GET /health    health check
    GET /scrape    fetch a page and convert it to Markdown

Every error response has the shape ``{"error": <kind>, "message": <text>}``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from webscraper import __version__
from webscraper.config import Settings, settings as default_settings
from webscraper.logging_config import setup_logging
from webscraper.scraper.browser import BrowserEngine
from webscraper.scraper.errors import ScraperError
from webscraper.scraper.service import ScraperService

from webscraper.api.routers import health as health_router
from webscraper.api.routers import scrape as scrape_router

logger = logging.getLogger(__name__)

_HTTP_ERROR_KINDS = {
    404: "not_found",
    405: "method_not_allowed",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the browser on startup and close it on shutdown."""
    engine = app.state.engine
    try:
        await engine.start()
    except Exception as exc:
        logger.warning(
            "Headless browser unavailable (%s); scrapes will use the static fetch only",
            exc,
        )
    app.state.scraper = ScraperService(app.state.settings, engine)
    try:
        yield
    finally:
        await engine.close()


def _error_response(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "message": message})


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ScraperError)
    async def scraper_error_handler(request: Request, exc: ScraperError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_response(exc.status_code, exc.kind, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(400, "bad_request", "Invalid request parameters")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            logger.info("No route: %s %s", request.method, request.url.path)
        kind = _HTTP_ERROR_KINDS.get(exc.status_code, "http_error")
        return _error_response(exc.status_code, kind, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "internal_error", "Internal server error")


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[BrowserEngine] = None,
) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    Args:
        settings: Configuration; the environment-derived singleton by default.
        engine: Browser engine to share across requests; a new Chromium
            engine by default.  The app starts and closes it.
    """
    settings = settings or default_settings
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Web Scraper API",
        description=(
            "Fetches a web page (rendering JavaScript when possible), lists its "
            "links and converts its main content to Markdown."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine or BrowserEngine(user_agent=settings.primary_user_agent)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=False,
        max_age=12 * 60 * 60,
    )

    _install_error_handlers(app)

    app.include_router(health_router.router, tags=["health"])
    app.include_router(scrape_router.router, tags=["scrape"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn webscraper.api.app:app --reload
app = create_app()
