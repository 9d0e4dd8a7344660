"""Internal link graph construction and analysis.

The graph is built once from the discovered page records. Every report below
is an independent function of the built graph, so each can be computed (and
tested) without the others.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from seo_discovery.config import LinkThresholds, default_thresholds
from seo_discovery.constants import (
    DEEP_PAGE_DEPTH,
    GENERIC_ANCHOR_PHRASES,
    MAX_ISSUE_SAMPLES,
    MIN_DEEP_LINK_RATIO,
    OVER_OPTIMIZED_ANCHOR_COUNT,
)
from seo_discovery.html_extractor import extract_links
from seo_discovery.models import (
    AnchorTextAnalysis,
    AnchorUsage,
    DeepLinkRatio,
    LinkAnalysisReport,
    LinkDepthAnalysis,
    LinkEdge,
    LinkedPage,
    PageRecord,
    PageSource,
)
from seo_discovery.url_utils import host_variants, hostname_of, is_homepage, is_internal, try_normalize

logger = logging.getLogger(__name__)


def normalize_anchor(text: str) -> str:
    """Lower-case anchor text and collapse whitespace."""
    return " ".join((text or "").lower().split())


def is_generic_anchor(text: str) -> bool:
    """Check an anchor against the generic phrase list (exact or substring)."""
    anchor = normalize_anchor(text)
    if not anchor:
        return False
    return any(phrase in anchor for phrase in GENERIC_ANCHOR_PHRASES)


@dataclass
class LinkGraph:
    """Directed graph of internal links between canonical URLs.

    ``incoming`` has a key for every known page and for every link target,
    so no edge ever points at a missing key. A redirect record links through
    to its target in ``outgoing`` only; the links on the target page are
    counted once, from the target.
    """

    domain: str
    pages: Dict[str, PageRecord] = field(default_factory=dict)
    incoming: Dict[str, Set[str]] = field(default_factory=dict)
    outgoing: Dict[str, List[str]] = field(default_factory=dict)
    edges: List[LinkEdge] = field(default_factory=list)

    @classmethod
    def build(cls, pages: Iterable[PageRecord], domain: str) -> "LinkGraph":
        """Build the graph from page records.

        Args:
            pages: Discovered page records (pages without HTML add no edges)
            domain: Audited domain; links to it or its www variant are internal

        Returns:
            LinkGraph
        """
        graph = cls(domain=hostname_of(domain) if "://" in domain else domain.lower())

        for page in pages:
            url = try_normalize(page.url)
            if url is None:
                logger.warning(f"Skipping page with invalid URL: {page.url!r}")
                continue
            graph.pages.setdefault(url, page)

        for url in graph.pages:
            graph.incoming[url] = set()
            graph.outgoing[url] = []

        linked_sources: Set[str] = set()
        for url, page in graph.pages.items():
            source = url
            if page.is_redirect:
                source = graph._redirect_target(url, page)
                if source is None:
                    continue
                if source != url:
                    # Click depth follows the redirect; incoming counts do not
                    graph.incoming.setdefault(source, set())
                    graph.outgoing.setdefault(source, [])
                    graph.outgoing[url].append(source)
                    if source in graph.pages:
                        continue

            # Several redirects can share one target
            if not page.html or source in linked_sources:
                continue
            linked_sources.add(source)

            for link in extract_links(page.html, page.final_url or url):
                target = link.url
                if not is_internal(target, graph.domain) or target == source:
                    continue

                target_page = graph.pages.get(target)
                graph.edges.append(
                    LinkEdge(
                        source_url=source,
                        target_url=target,
                        anchor_text=link.anchor_text,
                        is_nofollow=link.is_nofollow,
                        is_broken=target_page is not None and target_page.is_error,
                    )
                )
                graph.incoming.setdefault(target, set()).add(source)
                graph.outgoing.setdefault(target, [])
                if target not in graph.outgoing[source]:
                    graph.outgoing[source].append(target)

        logger.info(
            f"Built link graph for {graph.domain}: {len(graph.pages)} pages, "
            f"{len(graph.edges)} internal links"
        )
        return graph

    def _redirect_target(self, url: str, page: PageRecord) -> Optional[str]:
        """Canonical URL a redirect record resolved to, None when it left the site."""
        if not page.final_url:
            return None
        target = try_normalize(page.final_url)
        if target is None or not is_internal(target, self.domain):
            return None
        return target

    def incoming_count(self, url: str) -> int:
        return len(self.incoming.get(url, ()))

    def homepage(self) -> str:
        """Canonical homepage, preferring https on the bare domain.

        Falls back to the http and www variants when only those are present.
        """
        hosts = [self.domain] + sorted(host_variants(self.domain) - {self.domain})
        candidates = [f"{scheme}://{host}/" for host in hosts for scheme in ("https", "http")]

        for known in (self.pages, self.incoming):
            for candidate in candidates:
                if candidate in known:
                    return candidate
        return candidates[0]


# ============================================================================
# Projections
# ============================================================================

def one_incoming_link_pages(graph: LinkGraph) -> List[str]:
    """Known pages linked from exactly one other page."""
    return [url for url in graph.pages if graph.incoming_count(url) == 1]


def orphaned_sitemap_pages(graph: LinkGraph) -> List[str]:
    """Sitemap-listed pages that no discovered page links to."""
    return [
        url for url, page in graph.pages.items()
        if page.source == PageSource.SITEMAP and graph.incoming_count(url) == 0
    ]


def true_orphans(graph: LinkGraph) -> List[str]:
    """Any known page that no discovered page links to."""
    return [url for url in graph.pages if graph.incoming_count(url) == 0]


def _group_by_source(edges: Iterable[LinkEdge]) -> List[LinkedPage]:
    grouped: Dict[str, List[str]] = defaultdict(list)
    for edge in edges:
        if edge.target_url not in grouped[edge.source_url]:
            grouped[edge.source_url].append(edge.target_url)
    return [LinkedPage(url=url, links=links) for url, links in grouped.items()]


def broken_link_pages(graph: LinkGraph) -> List[LinkedPage]:
    """Pages linking to known pages that returned 4xx/5xx."""
    return _group_by_source(edge for edge in graph.edges if edge.is_broken)


def nofollow_link_pages(graph: LinkGraph) -> List[LinkedPage]:
    """Pages with rel="nofollow" internal links."""
    return _group_by_source(edge for edge in graph.edges if edge.is_nofollow)


def compute_link_depths(graph: LinkGraph, deep_page_depth: int = DEEP_PAGE_DEPTH) -> LinkDepthAnalysis:
    """Breadth-first click depth from the homepage.

    Pages the search never reaches are left out of ``depths`` and listed in
    ``unreachable_pages`` instead.
    """
    homepage = graph.homepage()
    depths: Dict[str, int] = {homepage: 0}
    queue = deque([homepage])

    while queue:
        url = queue.popleft()
        for target in graph.outgoing.get(url, ()):
            if target not in depths:
                depths[target] = depths[url] + 1
                queue.append(target)

    return LinkDepthAnalysis(
        homepage=homepage,
        depths=depths,
        deep_pages=[(url, depth) for url, depth in depths.items() if depth > deep_page_depth],
        unreachable_pages=[url for url in graph.pages if url not in depths],
    )


def analyze_anchor_text(
    graph: LinkGraph,
    over_optimized_count: int = OVER_OPTIMIZED_ANCHOR_COUNT,
) -> AnchorTextAnalysis:
    """Tally anchor texts per target and flag generic and over-used ones."""
    by_target: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    for edge in graph.edges:
        anchor = normalize_anchor(edge.anchor_text)
        if anchor:
            by_target[edge.target_url][anchor] += 1

    analysis = AnchorTextAnalysis()
    for url, anchors in by_target.items():
        analysis.by_target[url] = dict(anchors)
        for anchor, count in anchors.items():
            if is_generic_anchor(anchor):
                analysis.generic_anchors.append(AnchorUsage(url=url, anchor_text=anchor, count=count))
            if count >= over_optimized_count:
                analysis.over_optimized_anchors.append(AnchorUsage(url=url, anchor_text=anchor, count=count))

    return analysis


def deep_link_ratio(graph: LinkGraph, min_ratio: float = MIN_DEEP_LINK_RATIO) -> DeepLinkRatio:
    """Share of internal links that point past the homepage."""
    homepage_links = sum(1 for edge in graph.edges if is_homepage(edge.target_url))
    deep_links = len(graph.edges) - homepage_links
    total = homepage_links + deep_links

    ratio = deep_links / total if total else 0.0
    return DeepLinkRatio(
        homepage_links=homepage_links,
        deep_content_links=deep_links,
        ratio=ratio,
        is_issue=total > 0 and ratio < min_ratio,
    )


# ============================================================================
# Analyzer
# ============================================================================

class LinkGraphAnalyzer:
    """Builds the link graph and assembles every projection into a report."""

    def __init__(self, thresholds: Optional[LinkThresholds] = None):
        self.thresholds = thresholds or default_thresholds

    def analyze(self, pages: Iterable[PageRecord], domain: str) -> LinkAnalysisReport:
        """Analyze the internal link structure of a set of pages.

        Args:
            pages: Discovered page records
            domain: Audited domain

        Returns:
            LinkAnalysisReport
        """
        graph = LinkGraph.build(pages, domain)
        thresholds = self.thresholds

        report = LinkAnalysisReport(
            domain=graph.domain,
            total_pages=len(graph.pages),
            total_internal_links=len(graph.edges),
            incoming_link_counts={url: len(sources) for url, sources in graph.incoming.items()},
            one_incoming_link_pages=one_incoming_link_pages(graph),
            orphaned_sitemap_pages=orphaned_sitemap_pages(graph),
            true_orphans=true_orphans(graph),
            broken_link_pages=broken_link_pages(graph),
            nofollow_link_pages=nofollow_link_pages(graph),
            link_depth=compute_link_depths(graph, thresholds.deep_page_depth),
            anchor_text=analyze_anchor_text(graph, thresholds.over_optimized_anchor_count),
            deep_link_ratio=deep_link_ratio(graph, thresholds.min_deep_link_ratio),
        )
        report.issues = self._collect_issues(report)
        return report

    def _collect_issues(self, report: LinkAnalysisReport) -> List[str]:
        issues = []
        thresholds = self.thresholds

        if report.true_orphans:
            issues.append(f"{len(report.true_orphans)} pages have no incoming internal links")
        if report.orphaned_sitemap_pages:
            issues.append(
                f"{len(report.orphaned_sitemap_pages)} sitemap pages have no incoming internal links"
            )
        if report.one_incoming_link_pages:
            issues.append(
                f"{len(report.one_incoming_link_pages)} pages have only one incoming internal link"
            )
        if report.broken_link_pages:
            total_broken = sum(page.count for page in report.broken_link_pages)
            issues.append(
                f"{total_broken} broken internal links on {len(report.broken_link_pages)} pages"
            )
        if report.nofollow_link_pages:
            total_nofollow = sum(page.count for page in report.nofollow_link_pages)
            issues.append(
                f"{total_nofollow} nofollow internal links on {len(report.nofollow_link_pages)} pages"
            )
        if report.link_depth.deep_pages:
            issues.append(
                f"{len(report.link_depth.deep_pages)} pages are more than "
                f"{thresholds.deep_page_depth} clicks from the homepage"
            )
        if report.link_depth.unreachable_pages:
            issues.append(
                f"{len(report.link_depth.unreachable_pages)} pages cannot be reached from the homepage"
            )
        if report.anchor_text.generic_anchors:
            issues.append(
                f"{len(report.anchor_text.generic_anchors)} generic anchor texts (e.g. \"click here\")"
            )
        if report.anchor_text.over_optimized_anchors:
            issues.append(
                f"{len(report.anchor_text.over_optimized_anchors)} anchor texts used "
                f"{thresholds.over_optimized_anchor_count}+ times for the same page"
            )
        if report.deep_link_ratio.is_issue:
            issues.append(
                f"Only {report.deep_link_ratio.ratio:.0%} of internal links point past the homepage "
                f"(target: {thresholds.min_deep_link_ratio:.0%})"
            )

        return issues


def analyze_links(
    pages: Iterable[PageRecord],
    domain: str,
    thresholds: Optional[LinkThresholds] = None,
) -> LinkAnalysisReport:
    """Build the link graph for ``pages`` and compute every report."""
    return LinkGraphAnalyzer(thresholds).analyze(pages, domain)


def _sample_lines(urls: List[str]) -> List[str]:
    lines = [f"  • {url}" for url in urls[:MAX_ISSUE_SAMPLES]]
    if len(urls) > MAX_ISSUE_SAMPLES:
        lines.append(f"  ... and {len(urls) - MAX_ISSUE_SAMPLES} more")
    return lines


def format_report(report: LinkAnalysisReport) -> str:
    """Render a link analysis report as plain text.

    Args:
        report: LinkAnalysisReport to render

    Returns:
        Human-readable report
    """
    report_lines = [
        f"Internal Link Analysis: {report.domain}",
        "=" * 50,
        f"Pages: {report.total_pages}",
        f"Internal links: {report.total_internal_links}",
        f"Homepage: {report.link_depth.homepage} (max depth {report.link_depth.max_depth})",
        f"Deep-link ratio: {report.deep_link_ratio.ratio:.2f}",
        "",
    ]

    if report.issues:
        report_lines.append(f"Issues ({len(report.issues)}):")
        for issue in report.issues:
            report_lines.append(f"  • {issue}")
        report_lines.append("")

    if report.true_orphans:
        report_lines.append(f"Orphan Pages ({len(report.true_orphans)}):")
        report_lines.extend(_sample_lines(report.true_orphans))
        report_lines.append("")

    if report.broken_link_pages:
        report_lines.append(f"Broken Internal Links ({len(report.broken_link_pages)} pages):")
        for page in report.broken_link_pages[:MAX_ISSUE_SAMPLES]:
            report_lines.append(f"  • On page {page.url}:")
            for broken in page.links[:3]:
                report_lines.append(f"    - {broken}")
            if page.count > 3:
                report_lines.append(f"    ... and {page.count - 3} more")
        report_lines.append("")

    if report.link_depth.deep_pages:
        report_lines.append(f"Deep Pages ({len(report.link_depth.deep_pages)}):")
        report_lines.extend(
            _sample_lines([f"{url} (depth {depth})" for url, depth in report.link_depth.deep_pages])
        )
        report_lines.append("")

    if report.link_depth.unreachable_pages:
        report_lines.append(f"Unreachable From Homepage ({len(report.link_depth.unreachable_pages)}):")
        report_lines.extend(_sample_lines(report.link_depth.unreachable_pages))
        report_lines.append("")

    if report.anchor_text.generic_anchors:
        report_lines.append(f"Generic Anchor Text ({len(report.anchor_text.generic_anchors)}):")
        report_lines.extend(
            _sample_lines([
                f"\"{usage.anchor_text}\" -> {usage.url} ({usage.count}x)"
                for usage in report.anchor_text.generic_anchors
            ])
        )
        report_lines.append("")

    return "\n".join(report_lines)
