"""Page discovery orchestration.

One call to ``PageDiscovery.discover_pages`` is one session: it gets its own
crawl state and fetcher failure cache, so concurrent audits of different
sites never share bookkeeping.
"""

import logging
from typing import Optional

import httpx

from seo_discovery.config import DiscoveryConfig
from seo_discovery.crawler import IntelligentCrawler
from seo_discovery.fetcher import PageFetcher
from seo_discovery.models import CrawlState, DiscoveryResult, RobotsCheckResult
from seo_discovery.renderer import Renderer
from seo_discovery.robots import RobotsChecker
from seo_discovery.sitemap_resolver import SitemapResolver
from seo_discovery.url_utils import normalize

logger = logging.getLogger(__name__)


class PageDiscovery:
    """Discover the pages of a site from its sitemap, or by crawling."""

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        renderer: Optional[Renderer] = None,
        robots_checker: Optional[RobotsChecker] = None,
    ):
        """
        Initialize page discovery.

        Args:
            config: Discovery configuration (defaults if None)
            client: Shared HTTP client (each session creates its own if None)
            renderer: Optional headless renderer for the crawl's first page
            robots_checker: robots.txt checker (one is created per session if None)
        """
        self.config = config or DiscoveryConfig()
        self.client = client
        self.renderer = renderer
        self.robots_checker = robots_checker

    async def _check_robots(self, url: str) -> Optional[RobotsCheckResult]:
        if not self.config.respect_robots:
            return None

        checker = self.robots_checker or RobotsChecker(
            client=self.client, timeout=self.config.robots_timeout
        )
        return await checker.ensure_allowed(url, self.config.user_agent)

    def _batch_delay(self, robots: Optional[RobotsCheckResult]) -> float:
        delay = self.config.batch_delay
        if robots and robots.crawl_delay and robots.crawl_delay > delay:
            logger.info(f"Honoring robots.txt Crawl-delay of {robots.crawl_delay}s")
            return robots.crawl_delay
        return delay

    async def discover_pages(self, base_url: str) -> DiscoveryResult:
        """Discover the pages of a site.

        Tries the sitemap first and falls back to a breadth-first crawl from
        the base URL when no sitemap yields pages.

        Args:
            base_url: Homepage or any URL on the site

        Returns:
            DiscoveryResult with every analyzed page

        Raises:
            InvalidUrlError: If base_url is not a valid absolute URL
            RobotsDisallowedError: If robots.txt disallows the base URL
            SiteUnreachableError: If the crawl cannot fetch the base URL
        """
        start = normalize(base_url)
        config = self.config
        logger.info(f"Discovering pages for {start}")

        robots = await self._check_robots(start)
        batch_delay = self._batch_delay(robots)
        state = CrawlState()

        async with PageFetcher(
            client=self.client,
            user_agent=config.user_agent,
            timeout=config.page_timeout,
            renderer=self.renderer,
        ) as fetcher:
            resolver = SitemapResolver(
                fetcher,
                state,
                timeout=config.sitemap_timeout,
                batch_size=config.batch_size,
                batch_delay=batch_delay,
            )
            declared = robots.sitemaps if robots else []
            resolution = await resolver.resolve(start, declared)

            if resolution is not None:
                return DiscoveryResult(
                    total_pages=len(resolution.pages),
                    pages=resolution.pages,
                    sitemap_url=resolution.sitemap_url,
                    sitemap_status="found",
                    discovery_method="sitemap",
                    robots=robots,
                )

            logger.info("No sitemap found, starting intelligent crawl...")
            crawler = IntelligentCrawler(
                fetcher,
                state,
                max_pages=config.max_pages,
                max_depth=config.max_depth,
                max_links_per_page=config.max_links_per_page,
                batch_size=config.batch_size,
                batch_delay=batch_delay,
                render_first_page=config.render_first_page,
            )
            outcome = await crawler.crawl(start)

        return DiscoveryResult(
            total_pages=len(outcome.pages),
            pages=outcome.pages,
            sitemap_status="missing",
            discovery_method="intelligent_crawl",
            crawl_depth=outcome.depth,
            robots=robots,
        )


async def discover_pages(
    base_url: str,
    config: Optional[DiscoveryConfig] = None,
    renderer: Optional[Renderer] = None,
) -> DiscoveryResult:
    """Convenience wrapper: discover pages with a one-off PageDiscovery."""
    return await PageDiscovery(config=config, renderer=renderer).discover_pages(base_url)
