"""Data models for page discovery and link graph analysis."""

from collections import deque
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional

from seo_discovery.constants import (
    ERROR_PAGE_TITLE,
    HTTP_ERROR_THRESHOLD,
    PERMANENT_REDIRECT_CODES,
)


class PageSource(str, Enum):
    """How a page entered the discovered set."""

    SITEMAP = "sitemap"
    CRAWL = "crawl"
    NAVIGATION = "navigation"


class FetchState(str, Enum):
    """States of the two-step fetch protocol."""

    INITIAL = "initial"
    REDIRECTED = "redirected"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class PageAnalysis:
    """Result of fetching and analyzing a single URL."""

    url: str
    title: str = ERROR_PAGE_TITLE
    status_code: int = 0
    has_title: bool = False
    has_description: bool = False
    has_h1: bool = False
    image_count: int = 0
    internal_links: list[str] = field(default_factory=list)
    outgoing_links: list[str] = field(default_factory=list)
    html: Optional[str] = None
    fetch_state: FetchState = FetchState.INITIAL
    error: Optional[str] = None

    # Redirect metadata
    is_redirect: bool = False
    original_url: Optional[str] = None
    final_url: Optional[str] = None
    redirect_status_code: Optional[int] = None

    @classmethod
    def failed(cls, url: str, error: Optional[str] = None) -> "PageAnalysis":
        """Degraded analysis for an unreachable URL (status 0)."""
        return cls(url=url, fetch_state=FetchState.FAILED, error=error)

    @property
    def link_count(self) -> int:
        return len(self.internal_links)

    @property
    def is_reachable(self) -> bool:
        return self.status_code != 0

    @property
    def is_error(self) -> bool:
        return self.status_code >= HTTP_ERROR_THRESHOLD


@dataclass
class PageRecord:
    """One fetched or sitemap-enumerated URL.

    ``url`` is always the canonical form produced by url_utils.normalize.
    """

    url: str
    title: str = ERROR_PAGE_TITLE
    status_code: int = 0
    has_title: bool = False
    has_description: bool = False
    has_h1: bool = False
    image_count: int = 0
    outgoing_links: list[str] = field(default_factory=list)
    link_count: int = 0
    source: PageSource = PageSource.CRAWL

    # Sitemap metadata
    last_modified: Optional[str] = None
    priority: Optional[float] = None
    change_freq: Optional[str] = None

    # Redirect metadata
    is_redirect: bool = False
    original_url: Optional[str] = None
    final_url: Optional[str] = None
    redirect_status_code: Optional[int] = None

    # Captured body used to build the link graph
    html: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_analysis(
        cls,
        url: str,
        analysis: PageAnalysis,
        source: PageSource,
        last_modified: Optional[str] = None,
        priority: Optional[float] = None,
        change_freq: Optional[str] = None,
    ) -> "PageRecord":
        """Populate a record from a fetch result."""
        return cls(
            url=url,
            title=analysis.title,
            status_code=analysis.status_code,
            has_title=analysis.has_title,
            has_description=analysis.has_description,
            has_h1=analysis.has_h1,
            image_count=analysis.image_count,
            outgoing_links=list(analysis.outgoing_links),
            link_count=analysis.link_count,
            source=source,
            last_modified=last_modified,
            priority=priority,
            change_freq=change_freq,
            is_redirect=analysis.is_redirect,
            original_url=analysis.original_url,
            final_url=analysis.final_url,
            redirect_status_code=analysis.redirect_status_code,
            html=analysis.html,
        )

    @property
    def is_permanent_redirect(self) -> bool:
        return self.is_redirect and self.redirect_status_code in PERMANENT_REDIRECT_CODES

    @property
    def is_error(self) -> bool:
        return self.status_code >= HTTP_ERROR_THRESHOLD

    def to_dict(self, include_html: bool = False) -> dict:
        data = asdict(self)
        data["source"] = self.source.value
        if not include_html:
            data.pop("html", None)
        return data


@dataclass(frozen=True)
class LinkEdge:
    """Directed internal link between two canonical URLs."""

    source_url: str
    target_url: str
    anchor_text: str = ""
    is_nofollow: bool = False
    is_broken: bool = False


@dataclass
class CrawlState:
    """Per-session crawl bookkeeping. Never shared between audits."""

    visited_urls: set[str] = field(default_factory=set)
    frontier: deque = field(default_factory=deque)
    depth: int = 0

    def mark_visited(self, url: str) -> bool:
        """Mark a URL visited. Returns False if it already was."""
        if url in self.visited_urls:
            return False
        self.visited_urls.add(url)
        return True


@dataclass
class SitemapEntry:
    """A single <url> block from a urlset."""

    loc: str
    last_modified: Optional[str] = None
    priority: Optional[float] = None
    change_freq: Optional[str] = None


@dataclass
class ParsedSitemap:
    """Successfully parsed sitemap document."""

    kind: str  # 'urlset' or 'sitemapindex'
    entries: list[SitemapEntry] = field(default_factory=list)
    child_sitemaps: list[str] = field(default_factory=list)
    skipped: int = 0


@dataclass
class SitemapParseError:
    """Sitemap body that could not be parsed."""

    url: str
    reason: str


@dataclass
class SitemapResolution:
    """Pages discovered through a sitemap."""

    pages: list[PageRecord] = field(default_factory=list)
    sitemap_url: Optional[str] = None


@dataclass
class CrawlOutcome:
    """Pages discovered by the fallback crawler."""

    pages: list[PageRecord] = field(default_factory=list)
    depth: int = 0


@dataclass
class RobotsCheckResult:
    """Outcome of a robots.txt policy check."""

    allowed: bool
    reason: Optional[str] = None
    crawl_delay: Optional[float] = None
    sitemaps: list[str] = field(default_factory=list)


@dataclass
class RenderResult:
    """Rendered DOM returned by a headless-render service."""

    html: str
    final_url: str
    status: int


@dataclass
class DiscoveryResult:
    """Result of discovering the pages of one site."""

    total_pages: int
    pages: list[PageRecord] = field(default_factory=list)
    sitemap_url: Optional[str] = None
    sitemap_status: str = "missing"  # 'found' or 'missing'
    discovery_method: str = "intelligent_crawl"  # or 'sitemap'
    crawl_depth: int = 0
    robots: Optional[RobotsCheckResult] = None

    def to_dict(self) -> dict:
        return {
            "total_pages": self.total_pages,
            "pages": [page.to_dict() for page in self.pages],
            "sitemap_url": self.sitemap_url,
            "sitemap_status": self.sitemap_status,
            "discovery_method": self.discovery_method,
            "crawl_depth": self.crawl_depth,
            "robots": asdict(self.robots) if self.robots else None,
        }


@dataclass
class PageSample:
    """The most important pages picked from a discovered page set."""

    pages: list[PageRecord] = field(default_factory=list)
    scores: dict[str, float] = field(default_factory=dict)
    total_pages: int = 0
    must_include: int = 0
    filtered_out: int = 0

    def to_dict(self) -> dict:
        return {
            "pages": [page.url for page in self.pages],
            "scores": dict(self.scores),
            "total_pages": self.total_pages,
            "must_include": self.must_include,
            "filtered_out": self.filtered_out,
        }


# ============================================================================
# Link Graph Report Models
# ============================================================================

@dataclass
class LinkedPage:
    """A source page and the internal targets of one link category."""

    url: str
    links: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.links)


@dataclass
class AnchorUsage:
    """How often one anchor text is used to link to one target."""

    url: str
    anchor_text: str
    count: int


@dataclass
class AnchorTextAnalysis:
    """Anchor text frequencies and diagnostics."""

    by_target: dict[str, dict[str, int]] = field(default_factory=dict)
    generic_anchors: list[AnchorUsage] = field(default_factory=list)
    over_optimized_anchors: list[AnchorUsage] = field(default_factory=list)


@dataclass
class LinkDepthAnalysis:
    """Click depth from the homepage."""

    homepage: Optional[str] = None
    depths: dict[str, int] = field(default_factory=dict)
    deep_pages: list[tuple[str, int]] = field(default_factory=list)
    unreachable_pages: list[str] = field(default_factory=list)

    @property
    def max_depth(self) -> int:
        return max(self.depths.values()) if self.depths else 0


@dataclass
class DeepLinkRatio:
    """Share of internal links pointing past the homepage."""

    homepage_links: int = 0
    deep_content_links: int = 0
    ratio: float = 0.0
    is_issue: bool = False


@dataclass
class LinkAnalysisReport:
    """Internal link graph analysis."""

    domain: str
    total_pages: int = 0
    total_internal_links: int = 0
    incoming_link_counts: dict[str, int] = field(default_factory=dict)
    one_incoming_link_pages: list[str] = field(default_factory=list)
    orphaned_sitemap_pages: list[str] = field(default_factory=list)
    true_orphans: list[str] = field(default_factory=list)
    broken_link_pages: list[LinkedPage] = field(default_factory=list)
    nofollow_link_pages: list[LinkedPage] = field(default_factory=list)
    link_depth: LinkDepthAnalysis = field(default_factory=LinkDepthAnalysis)
    anchor_text: AnchorTextAnalysis = field(default_factory=AnchorTextAnalysis)
    deep_link_ratio: DeepLinkRatio = field(default_factory=DeepLinkRatio)
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)
