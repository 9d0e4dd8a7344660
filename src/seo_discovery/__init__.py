"""SEO page discovery and internal link graph analysis."""

__version__ = "0.1.0"

from seo_discovery.discovery import PageDiscovery, discover_pages
from seo_discovery.sitemap_resolver import SitemapResolver, parse_sitemap_xml
from seo_discovery.fetcher import PageFetcher
from seo_discovery.crawler import IntelligentCrawler
from seo_discovery.robots import RobotsChecker
from seo_discovery.renderer import Renderer, PlaywrightRenderer
from seo_discovery.link_graph import (
    LinkGraph,
    LinkGraphAnalyzer,
    analyze_links,
    format_report,
)
from seo_discovery.sampling import PageSampler, select_smart_sample
from seo_discovery.models import (
    PageRecord,
    PageAnalysis,
    PageSource,
    LinkEdge,
    CrawlState,
    DiscoveryResult,
    LinkAnalysisReport,
    PageSample,
)
from seo_discovery.config import settings, DiscoveryConfig, LinkThresholds
from seo_discovery.exceptions import (
    DiscoveryError,
    InvalidUrlError,
    FetchError,
    FetchTimeoutError,
    TransportError,
    HttpStatusError,
    RobotsDisallowedError,
    SiteUnreachableError,
)
from seo_discovery.url_utils import normalize

__all__ = [
    # Discovery
    "PageDiscovery",
    "discover_pages",
    "SitemapResolver",
    "parse_sitemap_xml",
    "PageFetcher",
    "IntelligentCrawler",
    "RobotsChecker",
    "Renderer",
    "PlaywrightRenderer",
    # Link graph
    "LinkGraph",
    "LinkGraphAnalyzer",
    "analyze_links",
    "format_report",
    # Sampling
    "PageSampler",
    "select_smart_sample",
    # Models
    "PageRecord",
    "PageAnalysis",
    "PageSource",
    "LinkEdge",
    "CrawlState",
    "DiscoveryResult",
    "LinkAnalysisReport",
    "PageSample",
    # Config
    "settings",
    "DiscoveryConfig",
    "LinkThresholds",
    # Errors
    "DiscoveryError",
    "InvalidUrlError",
    "FetchError",
    "FetchTimeoutError",
    "TransportError",
    "HttpStatusError",
    "RobotsDisallowedError",
    "SiteUnreachableError",
    # Utils
    "normalize",
]
