"""Tests for robots.txt policy checks."""

import httpx
import pytest

from seo_discovery.constants import DEFAULT_USER_AGENT
from seo_discovery.exceptions import RobotsDisallowedError
from seo_discovery.robots import RobotsChecker, robots_token

BASE = "https://example.com"
USER_AGENT = "SEO-Discovery-Test/1.0"


class TestRobotsChecker:
    """Test cases for RobotsChecker."""

    @pytest.fixture
    def checker(self, client):
        """Checker on the mock site."""
        return RobotsChecker(client=client)

    @pytest.mark.asyncio
    async def test_missing_robots_allows_everything(self, checker):
        """No robots.txt means no restrictions."""
        result = await checker.is_allowed(f"{BASE}/", USER_AGENT)

        assert result.allowed is True
        assert result.crawl_delay is None
        assert result.sitemaps == []

    @pytest.mark.asyncio
    async def test_disallow_all(self, checker, routes):
        """A blanket disallow blocks the site."""
        routes[f"{BASE}/robots.txt"] = (200, "User-agent: *\nDisallow: /\n")

        result = await checker.is_allowed(f"{BASE}/", USER_AGENT)

        assert result.allowed is False
        assert USER_AGENT in result.reason

    @pytest.mark.asyncio
    async def test_ensure_allowed_raises(self, checker, routes):
        """ensure_allowed turns a disallow into an error."""
        routes[f"{BASE}/robots.txt"] = (200, "User-agent: *\nDisallow: /\n")

        with pytest.raises(RobotsDisallowedError):
            await checker.ensure_allowed(f"{BASE}/", USER_AGENT)

    @pytest.mark.asyncio
    async def test_crawl_delay_and_sitemaps(self, checker, routes):
        """Crawl-delay and Sitemap lines are reported with an allow."""
        routes[f"{BASE}/robots.txt"] = (200, (
            "User-agent: *\n"
            "Crawl-delay: 2\n"
            "Disallow: /private\n"
            "\n"
            "Sitemap: https://example.com/custom-sitemap.xml\n"
        ))

        allowed = await checker.is_allowed(f"{BASE}/", USER_AGENT)
        blocked = await checker.is_allowed(f"{BASE}/private/area", USER_AGENT)

        assert allowed.allowed is True
        assert allowed.crawl_delay == 2.0
        assert allowed.sitemaps == ["https://example.com/custom-sitemap.xml"]
        assert blocked.allowed is False

    @pytest.mark.asyncio
    async def test_group_for_bot_token_applies(self, checker, routes):
        """A group naming the bot blocks a browser-style user agent."""
        routes[f"{BASE}/robots.txt"] = (200, (
            "User-agent: *\n"
            "Allow: /\n"
            "\n"
            "User-agent: SEO-Discovery\n"
            "Disallow: /\n"
        ))

        result = await checker.is_allowed(f"{BASE}/", DEFAULT_USER_AGENT)

        assert result.allowed is False
        assert DEFAULT_USER_AGENT in result.reason

    @pytest.mark.asyncio
    async def test_bot_token_crawl_delay(self, checker, routes):
        """Crawl-delay from the bot's own group is used."""
        routes[f"{BASE}/robots.txt"] = (200, (
            "User-agent: *\n"
            "Crawl-delay: 1\n"
            "\n"
            "User-agent: SEO-Discovery\n"
            "Crawl-delay: 4\n"
            "Disallow: /private\n"
        ))

        result = await checker.is_allowed(f"{BASE}/", DEFAULT_USER_AGENT)

        assert result.allowed is True
        assert result.crawl_delay == 4.0

    @pytest.mark.parametrize("user_agent, token", [
        ("Mozilla/5.0 (compatible; SEO-Discovery/1.0)", "SEO-Discovery"),
        ("Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)", "Googlebot"),
        ("SEO-Analyzer-Bot/1.0", "SEO-Analyzer-Bot"),
    ])
    def test_robots_token(self, user_agent, token):
        """The product token is pulled out of the user agent string."""
        assert robots_token(user_agent) == token

    @pytest.mark.asyncio
    async def test_unfetchable_robots_allows(self, checker, routes):
        """A network failure on robots.txt is treated as no robots.txt."""
        routes[f"{BASE}/robots.txt"] = httpx.ConnectError("connection refused")

        result = await checker.is_allowed(f"{BASE}/", USER_AGENT)

        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_cached_per_origin(self, checker, routes, calls):
        """robots.txt is fetched once per origin."""
        routes[f"{BASE}/robots.txt"] = (200, "User-agent: *\nDisallow:\n")

        await checker.is_allowed(f"{BASE}/a", USER_AGENT)
        await checker.is_allowed(f"{BASE}/b", USER_AGENT)

        assert calls.count(f"{BASE}/robots.txt") == 1
        assert f"{BASE}" in checker.robots_txt_content
