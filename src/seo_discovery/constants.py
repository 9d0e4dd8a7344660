# src/seo_discovery/constants.py
"""Centralized constants for page discovery and link graph analysis.

This module contains magic numbers and configuration values that are used
across multiple modules. For user-configurable values, see config.py,
DiscoveryConfig and LinkThresholds.
"""

# =============================================================================
# HTTP Constants
# =============================================================================

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SEO-Discovery/1.0)"

# Timeouts in seconds per call type
PAGE_FETCH_TIMEOUT_SECONDS = 10.0
SITEMAP_FETCH_TIMEOUT_SECONDS = 10.0
ROBOTS_FETCH_TIMEOUT_SECONDS = 5.0

# Status code classes
HTTP_ERROR_THRESHOLD = 400
HTTP_REDIRECT_MIN = 300
PERMANENT_REDIRECT_CODES = frozenset({301, 308})

# Titles used for pages with no usable content
ERROR_PAGE_TITLE = "Error loading page"
NO_TITLE = "No title"
REDIRECT_WITHOUT_LOCATION_TITLE = "Redirect without location"


# =============================================================================
# Sitemap Constants
# =============================================================================

# Probed in order, relative to the site origin
SITEMAP_CANDIDATE_PATHS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/wp-sitemap.xml",
    "/sitemap",
)

# Nested sitemap indexes deeper than this are ignored
MAX_SITEMAP_INDEX_DEPTH = 3


# =============================================================================
# Crawler Constants
# =============================================================================

# Pages crawled when no sitemap exists
DEFAULT_MAX_PAGES_TO_CRAWL = 50

# Number of BFS levels crawled (depth 0 is the start URL)
DEFAULT_MAX_CRAWL_DEPTH = 3

# New links enqueued per crawled page
DEFAULT_MAX_LINKS_PER_PAGE = 10

# Concurrent fetches per batch
DEFAULT_BATCH_SIZE = 5

# Pause between batches (seconds)
DEFAULT_BATCH_DELAY_SECONDS = 0.5

# Wait for client-side rendering after navigation (milliseconds)
RENDER_SETTLE_MS = 1000

# Link schemes and prefixes that never count as page links
SKIPPED_HREF_PREFIXES = ("#", "mailto:", "tel:", "javascript:")


# =============================================================================
# Link Graph Constants
# =============================================================================

# Pages deeper than this many clicks from the homepage are "deep"
DEEP_PAGE_DEPTH = 3

# An (url, anchor) pair used this many times is over-optimized
OVER_OPTIMIZED_ANCHOR_COUNT = 5

# Minimum share of internal links pointing past the homepage
MIN_DEEP_LINK_RATIO = 0.6

GENERIC_ANCHOR_PHRASES = (
    "click here",
    "read more",
    "learn more",
    "here",
    "this",
    "link",
    "more",
)

# Maximum samples to include in issue messages
MAX_ISSUE_SAMPLES = 5


# =============================================================================
# Page Sampling Constants
# =============================================================================

# Base importance score; the homepage always scores HOMEPAGE_SCORE
BASE_PAGE_SCORE = 100
HOMEPAGE_SCORE = 1000

# Points lost per path segment
DEPTH_PENALTY_PER_SEGMENT = 10

# Applied once when the path contains any high/low-value pattern
HIGH_VALUE_BONUS = 50
LOW_VALUE_PENALTY = 50

HIGH_VALUE_PATH_PATTERNS = (
    "/products", "/product/",
    "/services", "/service/",
    "/solutions", "/solution/",
    "/about", "/contact",
    "/pricing", "/plans",
    "/blog", "/news",
    "/features", "/use-cases",
)

# Matched against the path and the full URL (query patterns)
LOW_VALUE_URL_PATTERNS = (
    "/tag/", "/tags/",
    "/author/", "/authors/",
    "/page/", "/pg/",
    "/archive/", "/category/",
    "/wp-admin/", "/admin/",
    "/login/", "/signup/",
    "/cart/", "/checkout/",
    "/search",
    "?page=", "?filter=", "?sort=",
)

# Sitemap <priority> (0.0-1.0) is multiplied by this
SITEMAP_PRIORITY_WEIGHT = 100

# (max age in days, bonus) for <lastmod>, first match wins
RECENCY_BONUSES = (
    (30, 30),
    (90, 15),
)
