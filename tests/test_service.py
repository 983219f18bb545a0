"""Tests for the scrape orchestrator.

Both fetch strategies are replaced by small fakes so each test controls
exactly which strategy succeeds, fails or hangs.  The robots.txt tests use
``respx`` for their HTTP calls.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx
import pytest
import respx

from webscraper.config import Settings
from webscraper.scraper.browser import BrowserEngine
from webscraper.scraper.errors import (
    FetchFailed,
    InvalidDepth,
    InvalidURL,
    NavigationError,
    RenderTimeout,
    StaticFetchError,
)
from webscraper.scraper.models import Link, Static
from webscraper.scraper.service import (
    CRAWL_TRUNCATED_WARNING,
    EMPTY_HTML_WARNING,
    ScraperService,
)
from webscraper.scraper.static_fetcher import StaticFetcher


# ---------------------------------------------------------------------------
# Fakes / helpers
# ---------------------------------------------------------------------------

_PAGE = """\
<html>
<head><title>  Example Domain  </title></head>
<body>
  <main>
    <h1>Example</h1>
    <p>Some body text.</p>
    <a href="/more">More</a>
  </main>
</body>
</html>
"""


class FakeDynamic:
    def __init__(self, html: str = _PAGE, error: Optional[Exception] = None, hang: bool = False) -> None:
        self.html = html
        self.error = error
        self.hang = hang
        self.calls: List[str] = []
        self.cancelled = False

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        if self.hang:
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.html


class FakeStatic:
    def __init__(self, outcome: Optional[Static] = None, error: Optional[Exception] = None) -> None:
        self.outcome = outcome or Static(
            html="<html><body><p>Static body</p></body></html>",
            links=(Link(href="https://example.com/from-static", text="S"),),
        )
        self.error = error
        self.calls: List[tuple] = []
        self.robots = None
        self.deadline: Optional[float] = None

    async def fetch(self, url: str, depth: int = 1, robots=None, deadline=None) -> Static:
        self.calls.append((url, depth))
        self.robots, self.deadline = robots, deadline
        if self.error is not None:
            raise self.error
        return self.outcome


def _settings(**overrides) -> Settings:
    values = dict(ignore_robots=True, scrape_timeout=5.0, scraper_delay=0.0)
    values.update(overrides)
    return Settings(**values)


def _service(dynamic: FakeDynamic, static: FakeStatic, **overrides) -> ScraperService:
    return ScraperService(
        _settings(**overrides),
        BrowserEngine(),
        static_fetcher=static,  # type: ignore[arg-type]
        dynamic_fetcher=dynamic,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Dynamic path
# ---------------------------------------------------------------------------

class TestRenderedPath:
    async def test_builds_result_from_rendered_html(self) -> None:
        dynamic, static = FakeDynamic(), FakeStatic()
        before = datetime.now(timezone.utc)

        result = await _service(dynamic, static).scrape("https://example.com/page")

        assert result.title == "Example Domain"
        assert result.raw_html == _PAGE
        assert result.markdown == "# Example\n\nSome body text.\n\n[More](/more)"
        assert result.links == (Link(href="https://example.com/more", text="More"),)
        assert result.warnings == ()
        assert before <= result.fetched_at <= datetime.now(timezone.utc)
        assert static.calls == []

    async def test_title_falls_back_to_host(self) -> None:
        dynamic = FakeDynamic(html="<html><body><p>x</p></body></html>")

        result = await _service(dynamic, FakeStatic()).scrape("https://example.com:8080/a")

        assert result.title == "example.com:8080"

    async def test_empty_html_is_a_warning_not_an_error(self) -> None:
        dynamic = FakeDynamic(html="")

        result = await _service(dynamic, FakeStatic()).scrape("https://example.com/")

        assert result.warnings == (EMPTY_HTML_WARNING,)
        assert result.markdown == ""
        assert result.links == ()
        assert result.title == "example.com"

    async def test_markdown_falls_back_to_body_text(self) -> None:
        html = "<html><body><main></main><span>Only text</span></body></html>"

        result = await _service(FakeDynamic(html=html), FakeStatic()).scrape("https://e.com/")

        assert result.markdown == "Only text"


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

class TestFallback:
    async def test_dynamic_failure_falls_back_to_static(self) -> None:
        dynamic = FakeDynamic(error=NavigationError("net::ERR_CONNECTION_REFUSED"))
        static = FakeStatic()

        result = await _service(dynamic, static).scrape("https://example.com/", depth=3)

        assert static.calls == [("https://example.com/", 3)]
        assert result.markdown == "Static body\n\n"
        assert result.links == (Link(href="https://example.com/from-static", text="S"),)
        assert len(result.warnings) == 1
        assert "falling back" in result.warnings[0]
        assert "ERR_CONNECTION_REFUSED" in result.warnings[0]

    async def test_each_strategy_runs_once(self) -> None:
        dynamic = FakeDynamic(error=RenderTimeout("too slow"))
        static = FakeStatic()

        await _service(dynamic, static).scrape("https://example.com/")

        assert len(dynamic.calls) == 1
        assert len(static.calls) == 1

    async def test_both_failing_raises_fetch_failed(self) -> None:
        dynamic_error = RenderTimeout("render took too long")
        static_error = StaticFetchError("https://example.com/ returned HTTP 503")
        service = _service(FakeDynamic(error=dynamic_error), FakeStatic(error=static_error))

        with pytest.raises(FetchFailed) as excinfo:
            await service.scrape("https://example.com/")

        err = excinfo.value
        assert err.kind == "scrape_failed"
        assert err.status_code == 500
        assert "render took too long" in err.message
        assert "HTTP 503" in err.message
        assert err.dynamic_error is dynamic_error
        assert err.static_error is static_error
        assert err.__cause__ is static_error

    async def test_static_fallback_gets_the_scrape_deadline(self) -> None:
        static = FakeStatic()
        service = _service(FakeDynamic(error=RenderTimeout("slow")), static, scrape_timeout=5.0)

        await service.scrape("https://example.com/")

        assert static.deadline is not None
        assert 0 < static.deadline - time.monotonic() <= 5.0

    async def test_truncated_crawl_adds_warning(self) -> None:
        static = FakeStatic(
            outcome=Static(html="<html><body><p>Partial</p></body></html>", truncated=True)
        )
        service = _service(FakeDynamic(error=RenderTimeout("slow")), static)

        result = await service.scrape("https://example.com/", depth=3)

        assert result.markdown == "Partial\n\n"
        assert CRAWL_TRUNCATED_WARNING in result.warnings

    async def test_depth_does_not_reach_the_dynamic_path(self) -> None:
        dynamic, static = FakeDynamic(), FakeStatic()

        await _service(dynamic, static).scrape("https://example.com/", depth=4)

        assert dynamic.calls == ["https://example.com/"]
        assert static.calls == []


# ---------------------------------------------------------------------------
# Validation and timeouts
# ---------------------------------------------------------------------------

class TestValidation:
    async def test_invalid_url_fails_before_fetching(self) -> None:
        dynamic = FakeDynamic()
        with pytest.raises(InvalidURL):
            await _service(dynamic, FakeStatic()).scrape("ftp://example.com")
        assert dynamic.calls == []

    async def test_invalid_depth(self) -> None:
        with pytest.raises(InvalidDepth):
            await _service(FakeDynamic(), FakeStatic()).scrape("https://example.com", depth="0")


class TestTimeout:
    async def test_overall_timeout_cancels_in_flight_fetch(self) -> None:
        dynamic, static = FakeDynamic(hang=True), FakeStatic()
        service = _service(dynamic, static, scrape_timeout=0.05)

        with pytest.raises(FetchFailed, match="overall timeout"):
            await service.scrape("https://example.com/")

        assert dynamic.cancelled
        assert static.calls == []

    async def test_fetched_at_is_the_start_time(self) -> None:
        class SlowDynamic(FakeDynamic):
            async def fetch(self, url: str) -> str:
                await asyncio.sleep(0.05)
                return await super().fetch(url)

        before = datetime.now(timezone.utc)
        result = await _service(SlowDynamic(), FakeStatic()).scrape("https://example.com/")

        assert result.fetched_at - before < timedelta(seconds=0.05)


# ---------------------------------------------------------------------------
# robots.txt
# ---------------------------------------------------------------------------

class TestRobots:
    async def test_disallowed_page_is_fetched_with_warning(self) -> None:
        with respx.mock:
            respx.get("https://example.com/robots.txt").mock(
                return_value=httpx.Response(200, text="User-agent: *\nDisallow: /\n")
            )
            service = _service(FakeDynamic(), FakeStatic(), ignore_robots=False)
            result = await service.scrape("https://example.com/page")

        assert result.title == "Example Domain"
        assert any("robots.txt disallows" in w for w in result.warnings)

    async def test_missing_robots_txt_allows(self) -> None:
        with respx.mock:
            respx.get("https://example.com/robots.txt").mock(return_value=httpx.Response(404))
            service = _service(FakeDynamic(), FakeStatic(), ignore_robots=False)
            result = await service.scrape("https://example.com/page")

        assert result.warnings == ()

    async def test_robots_txt_is_fetched_once_when_falling_back(self) -> None:
        settings = _settings(ignore_robots=False, scraper_delay_jitter=0.0)
        service = ScraperService(
            settings,
            BrowserEngine(),
            static_fetcher=StaticFetcher(settings),
            dynamic_fetcher=FakeDynamic(error=NavigationError("browser gone")),  # type: ignore[arg-type]
        )
        with respx.mock:
            robots_route = respx.get("https://example.com/robots.txt").mock(
                return_value=httpx.Response(200, text="User-agent: *\nAllow: /\n")
            )
            respx.get("https://example.com/").mock(
                return_value=httpx.Response(
                    200, html='<html><body><a href="/a">A</a></body></html>'
                )
            )
            deeper_route = respx.get("https://example.com/a").mock(
                return_value=httpx.Response(200, html="<html><body>a</body></html>")
            )
            result = await service.scrape("https://example.com/", depth=2)

        assert robots_route.call_count == 1
        assert deeper_route.called
        assert result.links == (Link(href="https://example.com/a", text="A"),)
