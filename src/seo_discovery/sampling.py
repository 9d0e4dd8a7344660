"""Smart sampling of discovered pages.

Large sites can list thousands of URLs in their sitemaps. The sampler picks
the pages most worth auditing: shallow pages, key page types, pages the
sitemap marks as important, and recently changed content.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from seo_discovery.constants import (
    BASE_PAGE_SCORE,
    DEPTH_PENALTY_PER_SEGMENT,
    HIGH_VALUE_BONUS,
    HIGH_VALUE_PATH_PATTERNS,
    HOMEPAGE_SCORE,
    LOW_VALUE_PENALTY,
    LOW_VALUE_URL_PATTERNS,
    RECENCY_BONUSES,
    SITEMAP_PRIORITY_WEIGHT,
)
from seo_discovery.models import PageRecord, PageSample

logger = logging.getLogger(__name__)


def url_depth(url: str) -> int:
    """Number of non-empty path segments."""
    return len([segment for segment in urlparse(url).path.split("/") if segment])


def parse_lastmod(value: Optional[str]) -> Optional[datetime]:
    """Parse a sitemap <lastmod> (W3C datetime) into an aware datetime."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparseable lastmod: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _matches_any(url: str, patterns: Iterable[str]) -> bool:
    lowered = url.lower()
    return any(pattern.lower() in lowered for pattern in patterns)


class PageSampler:
    """Score pages by importance and keep the best ones."""

    DEFAULT_HIGH_VALUE_PATTERNS: Sequence[str] = HIGH_VALUE_PATH_PATTERNS
    DEFAULT_LOW_VALUE_PATTERNS: Sequence[str] = LOW_VALUE_URL_PATTERNS

    def __init__(
        self,
        high_value_patterns: Optional[Sequence[str]] = None,
        low_value_patterns: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ):
        """
        Initialize the sampler.

        Args:
            high_value_patterns: Path fragments that mark key pages
            low_value_patterns: Path or URL fragments that mark filler pages
            now: Reference time for recency (defaults to the current time)
        """
        self.high_value_patterns = high_value_patterns or self.DEFAULT_HIGH_VALUE_PATTERNS
        self.low_value_patterns = low_value_patterns or self.DEFAULT_LOW_VALUE_PATTERNS
        self.now = now

    def score(self, page: PageRecord) -> float:
        """Importance score of a page; higher is more important.

        The homepage always gets the top score. Everything else starts from
        the base score and is adjusted for depth, page type, sitemap priority
        and how recently it changed.
        """
        url = page.url.lower()
        path = urlparse(url).path

        if path in ("", "/"):
            return HOMEPAGE_SCORE

        score = BASE_PAGE_SCORE - url_depth(url) * DEPTH_PENALTY_PER_SEGMENT

        if any(pattern in path for pattern in self.high_value_patterns):
            score += HIGH_VALUE_BONUS

        if any(pattern in path or pattern in url for pattern in self.low_value_patterns):
            score -= LOW_VALUE_PENALTY

        if page.priority is not None:
            score += page.priority * SITEMAP_PRIORITY_WEIGHT

        modified = parse_lastmod(page.last_modified)
        if modified is not None:
            now = self.now or datetime.now(timezone.utc)
            age_days = (now - modified).total_seconds() / 86400
            for max_age, bonus in RECENCY_BONUSES:
                if age_days < max_age:
                    score += bonus
                    break

        return score

    def select(
        self,
        pages: Sequence[PageRecord],
        max_pages: int,
        include_patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
    ) -> PageSample:
        """Pick up to ``max_pages`` pages, most important first.

        Pages matching ``exclude_patterns`` are dropped. Pages matching
        ``include_patterns`` are always kept, ahead of the scored pages, even
        when they alone exceed ``max_pages``. Patterns are case-insensitive
        URL substrings. Ties keep discovery order.

        Args:
            pages: Discovered pages
            max_pages: Sample size
            include_patterns: URL fragments that must be in the sample
            exclude_patterns: URL fragments that must not be in the sample

        Returns:
            PageSample
        """
        candidates = [
            page for page in pages
            if not (exclude_patterns and _matches_any(page.url, exclude_patterns))
        ]

        must_include: List[PageRecord] = []
        remaining: List[PageRecord] = []
        for page in candidates:
            if include_patterns and _matches_any(page.url, include_patterns):
                must_include.append(page)
            else:
                remaining.append(page)

        scores = {page.url: self.score(page) for page in remaining}
        ranked = sorted(remaining, key=lambda page: scores[page.url], reverse=True)
        selected = ranked[:max(0, max_pages - len(must_include))]

        sample = PageSample(
            pages=must_include + selected,
            scores={page.url: scores[page.url] for page in selected},
            total_pages=len(pages),
            must_include=len(must_include),
            filtered_out=len(pages) - len(candidates),
        )

        logger.info(
            f"Smart sampling: selected {len(sample.pages)} of {len(pages)} pages "
            f"(must include: {sample.must_include}, top scored: {len(selected)}, "
            f"filtered out: {sample.filtered_out})"
        )
        return sample


def select_smart_sample(
    pages: Sequence[PageRecord],
    max_pages: int,
    include_patterns: Optional[Sequence[str]] = None,
    exclude_patterns: Optional[Sequence[str]] = None,
) -> PageSample:
    """Convenience wrapper around PageSampler().select()."""
    return PageSampler().select(pages, max_pages, include_patterns, exclude_patterns)
