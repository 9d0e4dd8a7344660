"""On-page signal extraction for discovered pages.

Each extractor is independent and tolerant of missing markup: a page with no
<title> still yields image and link counts.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from bs4 import BeautifulSoup

from seo_discovery.constants import NO_TITLE, SKIPPED_HREF_PREFIXES
from seo_discovery.url_utils import hostname_of, try_normalize

_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_CDATA_RE = re.compile(r"<!\[CDATA\[[\s\S]*?\]\]>")

# H1 kinds, strongest first
H1_TEXT = "text"
H1_NESTED = "nested"
H1_EMPTY = "empty"

_H1_PAIR_RE = re.compile(r"<h1\b[^>]*>([\s\S]*?)</h1>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_H1_OPEN_RE = re.compile(r"<h1\b[^>]*>", re.IGNORECASE)
_H1_CLOSE_RE = re.compile(r"</h1>", re.IGNORECASE)

_DESCRIPTION_META = (
    ("name", "description"),
    ("property", "og:description"),
    ("name", "twitter:description"),
    ("property", "twitter:description"),
)

Markup = Union[str, BeautifulSoup]


@dataclass
class ExtractedLink:
    """An <a href> found on a page, resolved to an absolute URL."""

    url: str
    anchor_text: str = ""
    is_nofollow: bool = False


@dataclass
class PageSignals:
    """All on-page signals extracted from one HTML document."""

    title: str = NO_TITLE
    has_title: bool = False
    has_description: bool = False
    has_h1: bool = False
    image_count: int = 0
    links: List[ExtractedLink] = field(default_factory=list)
    internal_links: List[str] = field(default_factory=list)

    @property
    def outgoing_links(self) -> List[str]:
        return [link.url for link in self.links]


def _soup(markup: Markup) -> BeautifulSoup:
    if isinstance(markup, BeautifulSoup):
        return markup
    return BeautifulSoup(markup or "", "html.parser")


def h1_kind(html: str) -> Optional[str]:
    """Classify the H1 markup of a page using a layered heuristic.

    Layers, strongest first:

    - ``"text"``: an H1 with text directly inside it
    - ``"nested"``: an H1 whose text sits in child elements (page builders
      such as Elementor wrap headings in spans)
    - ``"empty"``: H1 tags with no text, or an opening and a closing tag that
      do not pair up; the heading is usually filled in by JavaScript

    Comments and CDATA sections are ignored.

    Returns:
        The strongest kind found, or None when the page has no H1
    """
    if not html:
        return None

    clean_html = _CDATA_RE.sub("", _COMMENT_RE.sub("", html))

    kind = None
    for match in _H1_PAIR_RE.finditer(clean_html):
        inner = match.group(1)
        if "<" not in inner and inner.strip():
            return H1_TEXT
        if _TAG_RE.sub("", inner).strip():
            kind = H1_NESTED
        elif kind is None:
            kind = H1_EMPTY

    if kind is None and _H1_OPEN_RE.search(clean_html) and _H1_CLOSE_RE.search(clean_html):
        kind = H1_EMPTY
    return kind


def has_h1_tag(html: str) -> bool:
    """Any H1 counts, including an empty one."""
    return h1_kind(html) is not None


def extract_title(markup: Markup) -> Optional[str]:
    """Return the stripped <title> text, or None when there is no title tag."""
    soup = _soup(markup)
    title = soup.find("title")
    if title is None:
        return None
    return title.get_text(strip=True)


def has_meta_description(markup: Markup) -> bool:
    """Standard, Open Graph or Twitter description: any one suffices."""
    soup = _soup(markup)
    for attr, value in _DESCRIPTION_META:
        tag = soup.find(
            "meta",
            attrs={attr: lambda v, expected=value: v is not None and v.strip().lower() == expected},
        )
        if tag is not None:
            return True
    return False


def count_images(markup: Markup) -> int:
    return len(_soup(markup).find_all("img"))


def _is_page_href(href: str) -> bool:
    href_lower = href.strip().lower()
    if not href_lower:
        return False
    return not href_lower.startswith(SKIPPED_HREF_PREFIXES)


def _anchor_text(link) -> str:
    text = link.get_text(" ", strip=True)
    if not text:
        # Image links fall back to the alt text
        img = link.find("img", alt=True)
        if img is not None:
            text = img["alt"].strip()
    return " ".join(text.split())


def _is_nofollow(link) -> bool:
    rel = link.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return any(token.lower() == "nofollow" for token in rel)


def extract_links(markup: Markup, page_url: str) -> List[ExtractedLink]:
    """Extract <a href> links with anchor text and nofollow flag.

    Fragment-only, mailto:, tel: and javascript: targets are skipped. Every
    other href is resolved against the page URL; unparsable ones are dropped.

    Args:
        markup: HTML string or parsed soup
        page_url: URL of the page the links were found on

    Returns:
        Links in document order
    """
    soup = _soup(markup)
    links: List[ExtractedLink] = []

    for link in soup.find_all("a", href=True):
        href = link["href"]
        if not _is_page_href(href):
            continue

        absolute_url = try_normalize(href, page_url)
        if absolute_url is None:
            continue

        links.append(
            ExtractedLink(
                url=absolute_url,
                anchor_text=_anchor_text(link),
                is_nofollow=_is_nofollow(link),
            )
        )

    return links


def extract_page_signals(html: str, page_url: str) -> PageSignals:
    """Extract title, description, H1, image and link signals from a page.

    Args:
        html: Raw or rendered HTML
        page_url: URL the HTML was served for

    Returns:
        PageSignals for the document
    """
    soup = _soup(html)
    title = extract_title(soup)
    links = extract_links(soup, page_url)

    page_host = hostname_of(page_url)
    internal_links: List[str] = []
    seen = set()
    for link in links:
        if hostname_of(link.url) == page_host and link.url not in seen:
            seen.add(link.url)
            internal_links.append(link.url)

    return PageSignals(
        title=title or NO_TITLE,
        has_title=title is not None,
        has_description=has_meta_description(soup),
        has_h1=has_h1_tag(html),
        image_count=count_images(soup),
        links=links,
        internal_links=internal_links,
    )
