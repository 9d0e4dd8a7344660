"""Sitemap discovery and traversal.

Supports:
- Standard sitemap.xml urlsets
- Sitemap index files, including indexes nested a few levels deep
- Sitemaps declared in robots.txt
"""

import logging
import re
from typing import Iterable, List, Optional, Union
from xml.etree import ElementTree as ET

from seo_discovery.batching import run_in_batches
from seo_discovery.constants import (
    DEFAULT_BATCH_DELAY_SECONDS,
    DEFAULT_BATCH_SIZE,
    MAX_SITEMAP_INDEX_DEPTH,
    SITEMAP_CANDIDATE_PATHS,
    SITEMAP_FETCH_TIMEOUT_SECONDS,
)
from seo_discovery.exceptions import FetchError, HttpStatusError, InvalidUrlError
from seo_discovery.fetcher import PageFetcher
from seo_discovery.models import (
    CrawlState,
    PageRecord,
    PageSource,
    ParsedSitemap,
    SitemapEntry,
    SitemapParseError,
    SitemapResolution,
)
from seo_discovery.url_utils import normalize, site_origin, try_normalize

logger = logging.getLogger(__name__)

ParseResult = Union[ParsedSitemap, SitemapParseError]


def _local_name(tag: str) -> str:
    return tag.split('}')[-1] if '}' in tag else tag


def _child_text(elem: ET.Element, name: str) -> Optional[str]:
    for child in elem:
        if _local_name(child.tag) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def _clean_xml_content(content: str) -> str:
    """Clean XML content by removing any HTML wrapper."""
    content = content.lstrip("\ufeff").strip()

    # Remove DOCTYPE if present
    content = re.sub(r'<!DOCTYPE[^>]*>', '', content)

    # Remove HTML tags if the XML is wrapped
    if '<html' in content.lower():
        match = re.search(r'(<\?xml.*?</(?:urlset|sitemapindex)>)', content, re.DOTALL)
        if match:
            return match.group(1)

        match = re.search(r'(<(?:urlset|sitemapindex).*?</(?:urlset|sitemapindex)>)', content, re.DOTALL)
        if match:
            return match.group(1)

    return content


def looks_like_sitemap(content: str) -> bool:
    return '<sitemapindex' in content or '<urlset' in content


def _parse_entry(url_elem: ET.Element) -> Optional[SitemapEntry]:
    loc = _child_text(url_elem, 'loc')
    if not loc:
        return None

    priority = None
    priority_text = _child_text(url_elem, 'priority')
    if priority_text is not None:
        try:
            priority = float(priority_text)
        except ValueError:
            logger.debug(f"Ignoring invalid priority {priority_text!r} for {loc}")

    return SitemapEntry(
        loc=loc,
        last_modified=_child_text(url_elem, 'lastmod'),
        priority=priority,
        change_freq=_child_text(url_elem, 'changefreq'),
    )


def parse_sitemap_xml(content: str, sitemap_url: str) -> ParseResult:
    """Parse a sitemap document.

    Args:
        content: Raw response body
        sitemap_url: URL the body was fetched from (for messages)

    Returns:
        ParsedSitemap for a urlset or sitemap index, SitemapParseError otherwise
    """
    try:
        root = ET.fromstring(_clean_xml_content(content))
    except ET.ParseError as e:
        return SitemapParseError(url=sitemap_url, reason=f"invalid XML: {e}")

    root_tag = _local_name(root.tag)

    if root_tag == 'sitemapindex':
        children = []
        for sitemap in root:
            if _local_name(sitemap.tag) != 'sitemap':
                continue
            loc = _child_text(sitemap, 'loc')
            if loc:
                children.append(loc)
        return ParsedSitemap(kind='sitemapindex', child_sitemaps=children)

    if root_tag == 'urlset':
        parsed = ParsedSitemap(kind='urlset')
        for url_elem in root:
            if _local_name(url_elem.tag) != 'url':
                continue
            entry = _parse_entry(url_elem)
            if entry is None:
                parsed.skipped += 1
                continue
            parsed.entries.append(entry)
        return parsed

    return SitemapParseError(url=sitemap_url, reason=f"unknown root element: {root_tag}")


class SitemapResolver:
    """
    Find a site's sitemap and turn it into analyzed page records.

    Resolution and page analysis are interleaved: each accepted <loc> is
    fetched and analyzed before it joins the result. The visited set is the
    discovery session's, so URLs listed in several child sitemaps are only
    fetched once.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        state: Optional[CrawlState] = None,
        timeout: float = SITEMAP_FETCH_TIMEOUT_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY_SECONDS,
    ):
        """
        Initialize the resolver.

        Args:
            fetcher: Page fetcher shared with the discovery session
            state: Session crawl state (a fresh one if None)
            timeout: Sitemap request timeout in seconds
            batch_size: Concurrent fetches per batch
            batch_delay: Seconds between batches
        """
        self.fetcher = fetcher
        self.state = state or CrawlState()
        self.timeout = timeout
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    @staticmethod
    def candidate_urls(base_url: str, declared: Iterable[str] = ()) -> List[str]:
        """Probe order: well-known paths, then sitemaps declared in robots.txt."""
        origin = site_origin(base_url)
        candidates = [f"{origin}{path}" for path in SITEMAP_CANDIDATE_PATHS]
        candidates.extend(declared)

        unique = []
        seen = set()
        for candidate in candidates:
            key = try_normalize(candidate)
            if key is None or key in seen:
                continue
            seen.add(key)
            unique.append(candidate)
        return unique

    async def get_sitemap(self, sitemap_url: str) -> str:
        """Fetch a sitemap body.

        Raises:
            HttpStatusError: On a non-2xx response
            FetchError: On timeout or transport failure
        """
        response = await self.fetcher.get(sitemap_url, follow_redirects=True, timeout=self.timeout)
        if not 200 <= response.status_code < 300:
            raise HttpStatusError(sitemap_url, response.status_code)
        return response.text

    async def fetch_sitemap(self, sitemap_url: str) -> Optional[str]:
        """Fetch a sitemap body. Returns None on non-2xx or network failure."""
        try:
            return await self.get_sitemap(sitemap_url)
        except (FetchError, HttpStatusError) as e:
            logger.info(f"Could not fetch sitemap {sitemap_url}: {e}")
            return None

    async def resolve(self, base_url: str, declared_sitemaps: Iterable[str] = ()) -> Optional[SitemapResolution]:
        """Find and resolve the site's sitemap.

        Args:
            base_url: Any URL on the audited site
            declared_sitemaps: Sitemap URLs listed in robots.txt

        Returns:
            SitemapResolution, or None when no candidate yields pages
        """
        for sitemap_url in self.candidate_urls(base_url, declared_sitemaps):
            logger.info(f"Checking sitemap: {sitemap_url}")
            content = await self.fetch_sitemap(sitemap_url)
            if content is None or not looks_like_sitemap(content):
                continue

            parsed = parse_sitemap_xml(content, sitemap_url)
            if isinstance(parsed, SitemapParseError):
                logger.warning(f"Could not parse sitemap {sitemap_url}: {parsed.reason}")
                continue

            pages = await self.pages_from(parsed, sitemap_url)
            if pages:
                logger.info(f"Found {len(pages)} pages from sitemap {sitemap_url}")
                return SitemapResolution(pages=pages, sitemap_url=sitemap_url)

        logger.info(f"No usable sitemap found for {base_url}")
        return None

    async def pages_from(self, parsed: ParsedSitemap, sitemap_url: str, depth: int = 0) -> List[PageRecord]:
        """Analyze every page reachable from a parsed sitemap document."""
        if parsed.kind == 'sitemapindex':
            return await self._resolve_index(parsed.child_sitemaps, depth)
        return await self.analyze_entries(parsed.entries, sitemap_url, skipped=parsed.skipped)

    async def load_sitemap(self, sitemap_url: str) -> ParseResult:
        """Fetch and parse one sitemap; failures come back as SitemapParseError."""
        try:
            content = await self.get_sitemap(sitemap_url)
        except (FetchError, HttpStatusError) as e:
            return SitemapParseError(url=sitemap_url, reason=str(e))
        return parse_sitemap_xml(content, sitemap_url)

    async def _resolve_index(self, child_urls: List[str], depth: int) -> List[PageRecord]:
        if depth >= MAX_SITEMAP_INDEX_DEPTH:
            logger.warning(f"Sitemap index nesting deeper than {MAX_SITEMAP_INDEX_DEPTH}; ignoring {len(child_urls)} children")
            return []

        logger.info(f"Found {len(child_urls)} child sitemaps in sitemap index")

        outcomes = await run_in_batches(
            child_urls,
            self.load_sitemap,
            batch_size=self.batch_size,
            delay=self.batch_delay,
            label="child sitemap",
        )

        all_pages: List[PageRecord] = []
        for outcome in outcomes:
            if not outcome.ok:
                continue
            parsed = outcome.value
            if isinstance(parsed, SitemapParseError):
                logger.warning(f"Skipping child sitemap {parsed.url}: {parsed.reason}")
                continue

            pages = await self.pages_from(parsed, outcome.item, depth + 1)
            all_pages.extend(pages)
            logger.info(f"Parsed {len(pages)} pages from {outcome.item}, total: {len(all_pages)}")

        return all_pages

    async def _analyze_entry(self, entry: SitemapEntry) -> PageRecord:
        analysis = await self.fetcher.analyze_page(entry.loc)
        if analysis.status_code != 200:
            logger.info(f"Status {analysis.status_code} - {entry.loc}")
        return PageRecord.from_analysis(
            entry.loc,
            analysis,
            PageSource.SITEMAP,
            last_modified=entry.last_modified,
            priority=entry.priority,
            change_freq=entry.change_freq,
        )

    async def analyze_entries(
        self,
        entries: List[SitemapEntry],
        sitemap_url: str,
        skipped: int = 0,
    ) -> List[PageRecord]:
        """Validate, dedupe and analyze urlset entries.

        Invalid or duplicate locations are skipped, and an entry whose analysis
        raises is dropped without affecting the others.
        """
        accepted: List[SitemapEntry] = []

        for entry in entries:
            try:
                canonical = normalize(entry.loc)
            except InvalidUrlError as e:
                logger.info(f"Invalid URL in sitemap: {e}")
                continue

            if not self.state.mark_visited(canonical):
                continue

            entry.loc = canonical
            accepted.append(entry)

        outcomes = await run_in_batches(
            accepted,
            self._analyze_entry,
            batch_size=self.batch_size,
            delay=self.batch_delay,
            label="sitemap page",
        )

        total = len(entries) + skipped
        pages = [outcome.value for outcome in outcomes if outcome.ok]

        logger.info(
            f"Parsed {len(pages)} URLs from {sitemap_url} "
            f"({total} total, {total - len(pages)} skipped/failed)"
        )
        return pages
