"""Tests for discovery orchestration."""

import pytest

from seo_discovery.config import DiscoveryConfig
from seo_discovery.discovery import PageDiscovery
from seo_discovery.exceptions import InvalidUrlError, RobotsDisallowedError
from seo_discovery.models import DiscoveryResult, PageRecord, PageSource, RobotsCheckResult

BASE = "https://example.com"
NS = 'xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"'


def urlset(*locs):
    blocks = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f"<urlset {NS}>{blocks}</urlset>"


class TestPageDiscovery:
    """Test cases for PageDiscovery."""

    @pytest.fixture
    def config(self):
        """Configuration without inter-batch delays."""
        return DiscoveryConfig(batch_delay=0)

    @pytest.fixture
    def discovery(self, config, client):
        """Discovery on the mock site."""
        return PageDiscovery(config, client=client)

    @pytest.mark.asyncio
    async def test_sitemap_discovery(self, discovery, routes, make_page):
        """A sitemap, when present, is the discovery method."""
        routes[f"{BASE}/sitemap.xml"] = (200, urlset(f"{BASE}/", f"{BASE}/about"))
        routes[f"{BASE}/"] = (200, make_page(title="Home", links=["/about"]))
        routes[f"{BASE}/about"] = (200, make_page(title="About"))

        result = await discovery.discover_pages(BASE)

        assert result.discovery_method == "sitemap"
        assert result.sitemap_status == "found"
        assert result.sitemap_url == f"{BASE}/sitemap.xml"
        assert result.total_pages == 2
        assert all(page.source is PageSource.SITEMAP for page in result.pages)
        assert result.robots.allowed is True

    @pytest.mark.asyncio
    async def test_crawl_fallback(self, discovery, routes, make_page):
        """Without a sitemap the site is crawled from the base URL."""
        routes[f"{BASE}/"] = (200, make_page(title="Home", links=["/about", "/contact"]))
        routes[f"{BASE}/about"] = (200, make_page(title="About"))
        routes[f"{BASE}/contact"] = (200, make_page(title="Contact"))

        result = await discovery.discover_pages(f"{BASE}/")

        assert result.discovery_method == "intelligent_crawl"
        assert result.sitemap_status == "missing"
        assert result.sitemap_url is None
        assert result.total_pages == 3
        assert result.crawl_depth == 1
        assert result.pages[0].source is PageSource.NAVIGATION

    @pytest.mark.asyncio
    async def test_robots_disallow_is_fatal(self, discovery, routes, calls):
        """A disallowing robots.txt stops discovery before any page fetch."""
        routes[f"{BASE}/robots.txt"] = (200, "User-agent: *\nDisallow: /\n")

        with pytest.raises(RobotsDisallowedError):
            await discovery.discover_pages(BASE)

        assert calls == [f"{BASE}/robots.txt"]

    @pytest.mark.asyncio
    async def test_robots_ignored_when_disabled(self, client, routes, make_page):
        """respect_robots=False skips the check entirely."""
        routes[f"{BASE}/robots.txt"] = (200, "User-agent: *\nDisallow: /\n")
        routes[f"{BASE}/"] = (200, make_page())
        discovery = PageDiscovery(DiscoveryConfig(batch_delay=0, respect_robots=False), client=client)

        result = await discovery.discover_pages(BASE)

        assert result.total_pages == 1
        assert result.robots is None

    @pytest.mark.asyncio
    async def test_robots_declared_sitemap(self, discovery, routes, make_page):
        """Sitemaps declared in robots.txt are discovered."""
        routes[f"{BASE}/robots.txt"] = (200, f"User-agent: *\nDisallow:\n\nSitemap: {BASE}/maps/pages.xml\n")
        routes[f"{BASE}/maps/pages.xml"] = (200, urlset(f"{BASE}/listed"))
        routes[f"{BASE}/listed"] = (200, make_page())

        result = await discovery.discover_pages(BASE)

        assert result.sitemap_url == f"{BASE}/maps/pages.xml"
        assert [page.url for page in result.pages] == [f"{BASE}/listed"]

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, discovery, routes, make_page):
        """Running discovery twice gives the same result; no state leaks."""
        routes[f"{BASE}/"] = (200, make_page(links=["/a"]))
        routes[f"{BASE}/a"] = (200, make_page())

        first = await discovery.discover_pages(BASE)
        second = await discovery.discover_pages(BASE)

        assert [p.url for p in first.pages] == [p.url for p in second.pages]

    @pytest.mark.asyncio
    async def test_invalid_base_url(self, discovery):
        """A relative base URL is rejected."""
        with pytest.raises(InvalidUrlError):
            await discovery.discover_pages("example.com")

    def test_crawl_delay_raises_batch_delay(self, discovery):
        """A larger robots Crawl-delay replaces the configured delay."""
        assert discovery._batch_delay(RobotsCheckResult(allowed=True, crawl_delay=2.0)) == 2.0
        assert discovery._batch_delay(RobotsCheckResult(allowed=True)) == 0
        assert discovery._batch_delay(None) == 0

    def test_to_dict(self):
        """Results serialize without the captured HTML."""
        result = DiscoveryResult(total_pages=1, pages=[PageRecord(url=f"{BASE}/", html="<html></html>")])
        data = result.to_dict()

        assert data["pages"][0]["url"] == f"{BASE}/"
        assert data["pages"][0]["source"] == "crawl"
        assert "html" not in data["pages"][0]
        assert data["robots"] is None
