"""Tests for link resolution and anchor discovery."""

from __future__ import annotations

import pytest

from webscraper.scraper.errors import UnresolvableLink
from webscraper.scraper.links import extract_links, resolve_link
from webscraper.scraper.models import Link

_BASE = "https://example.com/docs/page.html"


class TestResolveLink:
    def test_root_relative(self) -> None:
        assert resolve_link("/about", _BASE) == "https://example.com/about"

    def test_document_relative(self) -> None:
        assert resolve_link("guide.html", _BASE) == "https://example.com/docs/guide.html"

    def test_parent_relative(self) -> None:
        assert resolve_link("../index.html", _BASE) == "https://example.com/index.html"

    def test_protocol_relative(self) -> None:
        assert resolve_link("//cdn.example.org/a.js", _BASE) == "https://cdn.example.org/a.js"

    def test_fragment_only(self) -> None:
        assert resolve_link("#top", _BASE) == "https://example.com/docs/page.html#top"

    @pytest.mark.parametrize(
        "href",
        [
            "https://other.org/path?q=1",
            "http://Example.COM/Mixed/Case?",
            "https://example.com:8443/x#frag",
        ],
    )
    @pytest.mark.parametrize("base", [_BASE, "http://unrelated.net/", "https://example.com/a/b/"])
    def test_absolute_urls_are_returned_unchanged(self, href: str, base: str) -> None:
        assert resolve_link(href, base) == href

    def test_unusual_schemes_pass_through(self) -> None:
        assert resolve_link("mailto:team@example.com", _BASE) == "mailto:team@example.com"
        assert resolve_link("javascript:void(0)", _BASE) == "javascript:void(0)"

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert resolve_link("  /about \n", _BASE) == "https://example.com/about"

    @pytest.mark.parametrize("href", ["http://[::1", "https://example.com:notaport/", "/a\x00b"])
    def test_structurally_invalid_href(self, href: str) -> None:
        with pytest.raises(UnresolvableLink):
            resolve_link(href, _BASE)

    def test_relative_base_is_rejected(self) -> None:
        with pytest.raises(UnresolvableLink):
            resolve_link("page.html", "/not/absolute")


class TestExtractLinks:
    def test_document_order_and_duplicates_kept(self) -> None:
        html = (
            "<body>"
            '<a href="/b">B</a>'
            '<a href="https://x.org/">  X  </a>'
            '<a href="/b">B again</a>'
            "</body>"
        )
        assert extract_links(html, _BASE) == [
            Link(href="https://example.com/b", text="B"),
            Link(href="https://x.org/", text="X"),
            Link(href="https://example.com/b", text="B again"),
        ]

    def test_anchors_without_href_are_ignored(self) -> None:
        html = '<a name="top">Top</a><a href="">Self</a>'
        assert extract_links(html, _BASE) == [Link(href=_BASE, text="Self")]

    def test_unresolvable_links_are_skipped(self) -> None:
        html = '<a href="http://[::1">bad</a><a href="/ok">ok</a>'
        assert extract_links(html, _BASE) == [Link(href="https://example.com/ok", text="ok")]

    def test_empty_text_allowed(self) -> None:
        html = '<a href="/img"><img src="x.png"></a>'
        assert extract_links(html, _BASE) == [Link(href="https://example.com/img", text="")]
