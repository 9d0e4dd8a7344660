"""URL normalization and host matching helpers.

Every URL used as a map key or set member goes through ``normalize`` first,
so two spellings of the same page always land on the same graph node.
"""

from typing import Optional, Set
from urllib.parse import urljoin, urlparse

from seo_discovery.exceptions import InvalidUrlError

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize(url: str, base: Optional[str] = None) -> str:
    """Canonicalize a URL.

    Lower-cases scheme and host, drops default ports and the fragment, keeps
    path and query, and strips one trailing slash unless the path is ``/``.

    Args:
        url: URL to normalize, absolute or relative to ``base``
        base: Optional base URL used to resolve relative input

    Returns:
        Canonical URL string

    Raises:
        InvalidUrlError: If the result is not absolute or has no hostname
    """
    if url is None:
        raise InvalidUrlError(str(url), "empty URL")

    candidate = url.strip()
    if not candidate:
        raise InvalidUrlError(url, "empty URL")

    if base:
        candidate = urljoin(base, candidate)

    try:
        parsed = urlparse(candidate)
        hostname = parsed.hostname
        port = parsed.port
    except ValueError as e:
        raise InvalidUrlError(url, str(e)) from e

    scheme = parsed.scheme.lower()
    if not scheme:
        raise InvalidUrlError(url, "not an absolute URL")
    if not hostname:
        raise InvalidUrlError(url, "missing hostname")

    netloc = hostname.lower()
    if ":" in netloc:
        netloc = f"[{netloc}]"  # IPv6 literal
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"

    path = parsed.path or "/"
    if path.endswith("/") and path != "/":
        path = path[:-1]

    normalized = f"{scheme}://{netloc}{path}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    return normalized


def try_normalize(url: str, base: Optional[str] = None) -> Optional[str]:
    """Normalize a URL, returning None instead of raising."""
    try:
        return normalize(url, base)
    except InvalidUrlError:
        return None


def hostname_of(url: str) -> str:
    """Return the lower-cased hostname of a URL ('' when absent)."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def host_variants(domain: str) -> Set[str]:
    """Return the domain together with its www/bare counterpart."""
    host = domain.strip().lower()
    if "://" in host:
        host = hostname_of(host)
    if not host:
        return set()
    if host.startswith("www."):
        return {host, host[4:]}
    return {host, f"www.{host}"}


def is_internal(url: str, domain: str) -> bool:
    """Check whether a URL belongs to the audited domain or its www variant."""
    return hostname_of(url) in host_variants(domain)


def is_homepage(url: str) -> bool:
    """Check whether a URL points at the site root (path '/' or empty)."""
    try:
        path = urlparse(url).path
    except ValueError:
        return False
    return path in ("", "/")


def homepage_url(domain: str, scheme: str = "https") -> str:
    """Canonical homepage URL for a domain."""
    return normalize(f"{scheme}://{domain}/")


def site_origin(url: str) -> str:
    """Return scheme://host[:port] for a URL."""
    parsed = urlparse(normalize(url))
    return f"{parsed.scheme}://{parsed.netloc}"
