"""Breadth-first fallback crawler for sites without a sitemap."""

import asyncio
import logging
from functools import partial
from typing import List, Optional

from seo_discovery.batching import run_in_batches
from seo_discovery.constants import (
    DEFAULT_BATCH_DELAY_SECONDS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_CRAWL_DEPTH,
    DEFAULT_MAX_LINKS_PER_PAGE,
    DEFAULT_MAX_PAGES_TO_CRAWL,
    HTTP_ERROR_THRESHOLD,
)
from seo_discovery.exceptions import SiteUnreachableError
from seo_discovery.fetcher import PageFetcher
from seo_discovery.models import CrawlOutcome, CrawlState, PageRecord, PageSource
from seo_discovery.url_utils import hostname_of, is_internal, normalize

logger = logging.getLogger(__name__)


class IntelligentCrawler:
    """Crawls a site level by level (depth 0, 1, 2...).

    - Marks URLs visited when they are popped, not when queued
    - Caps how many new links one page may add to the frontier
    - Advances depth only once the current level is exhausted
    - Stops at max_pages, at max_depth, or when the frontier empties
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        state: Optional[CrawlState] = None,
        max_pages: int = DEFAULT_MAX_PAGES_TO_CRAWL,
        max_depth: int = DEFAULT_MAX_CRAWL_DEPTH,
        max_links_per_page: int = DEFAULT_MAX_LINKS_PER_PAGE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY_SECONDS,
        render_first_page: bool = True,
    ):
        """Initialize the crawler.

        Args:
            fetcher: Page fetcher shared with the discovery session
            state: Session crawl state (a fresh one if None)
            max_pages: Maximum number of pages to analyze
            max_depth: Number of levels to crawl; depth 0 is the start URL
            max_links_per_page: New links enqueued per crawled page
            batch_size: Concurrent fetches per batch
            batch_delay: Seconds between batches
            render_first_page: Use the renderer for the depth-0 page
        """
        self.fetcher = fetcher
        self.state = state or CrawlState()
        self.max_pages = max_pages
        self.max_depth = max_depth
        self.max_links_per_page = max_links_per_page
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.render_first_page = render_first_page

    def _next_batch(self, limit: int) -> List[str]:
        """Pop up to ``limit`` unvisited URLs from the current level."""
        batch: List[str] = []
        frontier = self.state.frontier

        while frontier and len(batch) < limit:
            url, depth = frontier[0]
            if depth != self.state.depth:
                break
            frontier.popleft()
            if self.state.mark_visited(url):
                batch.append(url)

        return batch

    async def _crawl_page(self, url: str, depth: int) -> PageRecord:
        use_browser = depth == 0 and self.render_first_page
        logger.info(f"Crawling page: {url}")
        analysis = await self.fetcher.analyze_page(url, use_browser=use_browser)
        source = PageSource.NAVIGATION if depth == 0 else PageSource.CRAWL
        return PageRecord.from_analysis(url, analysis, source)

    def _new_links(self, page: PageRecord, domain: str) -> List[str]:
        """Same-domain, unvisited links from a page, capped per page."""
        links: List[str] = []
        seen = set()

        for link in page.outgoing_links:
            if link in seen or link in self.state.visited_urls:
                continue
            if not is_internal(link, domain):
                continue
            seen.add(link)
            links.append(link)
            if len(links) >= self.max_links_per_page:
                break

        return links

    async def crawl(
        self,
        start_url: str,
        max_pages: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> CrawlOutcome:
        """Crawl a site breadth-first from a start URL.

        Args:
            start_url: URL to start from
            max_pages: Override the configured page limit
            max_depth: Override the configured depth limit

        Returns:
            CrawlOutcome with every analyzed page and the depth reached

        Raises:
            SiteUnreachableError: If the start URL cannot be fetched at all
            InvalidUrlError: If the start URL is not a valid absolute URL
        """
        max_pages = max_pages if max_pages is not None else self.max_pages
        max_depth = max_depth if max_depth is not None else self.max_depth

        start = normalize(start_url)
        domain = hostname_of(start)
        state = self.state
        state.frontier.append((start, 0))
        state.depth = 0
        pages: List[PageRecord] = []

        while state.frontier and len(pages) < max_pages:
            next_depth = state.frontier[0][1]
            if next_depth >= max_depth:
                break
            if next_depth > state.depth:
                state.depth = next_depth
                logger.info(f"--- Moving to depth {state.depth} ---")

            batch = self._next_batch(min(self.batch_size, max_pages - len(pages)))
            if not batch:
                continue

            outcomes = await run_in_batches(
                batch,
                partial(self._crawl_page, depth=state.depth),
                batch_size=len(batch),
                label="crawl page",
            )

            for outcome in outcomes:
                if not outcome.ok:
                    pages.append(PageRecord(url=outcome.item, source=PageSource.CRAWL))
                    continue

                page = outcome.value
                pages.append(page)

                if state.depth == 0 and page.url == start and page.status_code == 0:
                    raise SiteUnreachableError(start, f"Could not reach {start}")

                if 0 < page.status_code < HTTP_ERROR_THRESHOLD:
                    for link in self._new_links(page, domain):
                        state.frontier.append((link, state.depth + 1))

            if state.frontier and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        logger.info(f"Intelligent crawl found {len(pages)} pages at depth {state.depth}")
        return CrawlOutcome(pages=pages, depth=state.depth)
