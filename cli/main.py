"""Web scraper CLI: scrape a page from the terminal or run the API server.

Usage:
    python cli/main.py --help

Commands:
    scrape   → run one scrape and print Markdown, JSON, or the link list
    serve    → start the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from webscraper.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from enum import Enum

import typer

from webscraper.config import settings
from webscraper.logging_config import setup_logging
from webscraper.scraper.browser import BrowserEngine
from webscraper.scraper.errors import ScraperError
from webscraper.scraper.models import ScrapeResult
from webscraper.scraper.service import ScraperService

app = typer.Typer(
    name="webscraper",
    help="Web scraper backend CLI.",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    markdown = "markdown"
    json = "json"
    links = "links"


async def _scrape_once(url: str, depth: int) -> ScrapeResult:
    """Run a single scrape with a browser started just for this call."""
    engine = BrowserEngine(user_agent=settings.primary_user_agent)
    try:
        await engine.start()
    except Exception as exc:
        typer.echo(f"[scrape] Headless browser unavailable ({exc}); using static fetch.", err=True)
    try:
        return await ScraperService(settings, engine).scrape(url, depth)
    finally:
        await engine.close()


# ---------------------------------------------------------------------------
# Scrape
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="Absolute http(s) URL to scrape."),
    depth: int = typer.Option(1, help="Crawl depth for the static fallback."),
    output: OutputFormat = typer.Option(
        OutputFormat.markdown, "--format", help="What to print: markdown | json | links."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline progress."),
) -> None:
    """Scrape a URL and print its Markdown (or the full result as JSON)."""
    setup_logging("DEBUG" if verbose else settings.log_level)

    typer.echo(f"[scrape] Fetching {url!r} …", err=True)
    try:
        result = asyncio.run(_scrape_once(url, depth))
    except ScraperError as exc:
        typer.echo(f"[scrape] {exc.kind}: {exc.message}", err=True)
        raise typer.Exit(code=1)

    for warning in result.warnings:
        typer.echo(f"[scrape] Warning: {warning}", err=True)

    if output is OutputFormat.json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    elif output is OutputFormat.links:
        for link in result.links:
            typer.echo(link.href)
    else:
        typer.echo(f"[scrape] Title  : {result.title}", err=True)
        typer.echo(f"[scrape] Links  : {len(result.links)}", err=True)
        typer.echo(result.markdown)


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option(settings.host, help="Interface to bind."),
    port: int = typer.Option(settings.port, help="Port to listen on."),
    reload: bool = typer.Option(False, help="Reload on code changes (development)."),
) -> None:
    """Run the HTTP API."""
    import uvicorn  # noqa: PLC0415

    typer.echo(f"[serve] Starting server on {host}:{port}")
    uvicorn.run("webscraper.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
