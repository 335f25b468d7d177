"""
Tests for sitemap parsing and expansion.
"""

from datetime import datetime

import pytest

from municipal_rag.scraper.errors import DocumentParseError
from municipal_rag.scraper.frontier import Frontier
from municipal_rag.scraper.sitemap import expand_sitemap, parse_datetime, parse_sitemap

BASE_URL = "https://town.example.ca"


class TestParseSitemap:
    """Test sitemap XML parsing."""

    def test_urlset(self, sample_sitemap: str):
        sitemap = parse_sitemap(sample_sitemap)

        assert [u.loc for u in sitemap.urls] == [
            f"{BASE_URL}/EN/main/town/a.html",
            f"{BASE_URL}/EN/main/town/b.html",
            "https://elsewhere.example.com/c.html",
        ]
        assert sitemap.urls[0].priority == 0.8
        assert sitemap.urls[0].lastmod is not None
        assert sitemap.sitemaps == []

    def test_index(self, sample_sitemap_index: str):
        sitemap = parse_sitemap(sample_sitemap_index)
        assert sitemap.urls == []
        assert sitemap.sitemaps == [
            f"{BASE_URL}/pages-sitemap.xml",
            f"{BASE_URL}/news-sitemap.xml",
        ]

    def test_without_namespace(self):
        xml = "<urlset><url><loc>https://town.example.ca/x.html</loc></url></urlset>"
        assert [u.loc for u in parse_sitemap(xml).urls] == ["https://town.example.ca/x.html"]

    def test_malformed(self):
        with pytest.raises(DocumentParseError):
            parse_sitemap("<urlset><url>")


class TestParseDatetime:
    """Test lastmod parsing."""

    def test_with_milliseconds_and_offset(self):
        parsed = parse_datetime("2024-01-27T11:05:03.823-05:00")
        assert parsed is not None
        assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2024, 1, 27, 11)

    def test_date_only(self):
        assert parse_datetime("2023-05-01") == datetime(2023, 5, 1)

    def test_invalid(self):
        assert parse_datetime("yesterday") is None
        assert parse_datetime(None) is None


class TestExpandSitemap:
    """Test frontier expansion from sitemaps."""

    def test_pages_go_to_front(self, sample_sitemap: str):
        """Test same-site pages jump ahead of queued URLs, in sitemap order."""
        frontier = Frontier([f"{BASE_URL}/queued.html"])
        added = expand_sitemap(sample_sitemap, frontier, BASE_URL)

        assert added == 2
        assert frontier.pop() == f"{BASE_URL}/EN/main/town/a.html"
        assert frontier.pop() == f"{BASE_URL}/EN/main/town/b.html"
        assert frontier.pop() == f"{BASE_URL}/queued.html"

    def test_nested_sitemaps_followed(self, sample_sitemap_index: str):
        frontier = Frontier()
        expand_sitemap(sample_sitemap_index, frontier, BASE_URL)
        assert frontier.pop() == f"{BASE_URL}/pages-sitemap.xml"
        assert frontier.pop() == f"{BASE_URL}/news-sitemap.xml"

    def test_known_urls_not_readded(self, sample_sitemap: str):
        frontier = Frontier([f"{BASE_URL}/EN/main/town/a.html"])
        frontier.pop()
        assert expand_sitemap(sample_sitemap, frontier, BASE_URL) == 1

    def test_look_alike_hosts_ignored(self):
        xml = f"""<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
            <url><loc>{BASE_URL}.evil.com/a.html</loc></url>
            <url><loc>{BASE_URL}:abc/b.html</loc></url>
            <url><loc>{BASE_URL}/c.html</loc></url>
        </urlset>"""
        frontier = Frontier()
        assert expand_sitemap(xml, frontier, BASE_URL) == 1
        assert frontier.pop() == f"{BASE_URL}/c.html"
