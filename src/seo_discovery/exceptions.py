"""Exceptions raised during page discovery."""

from typing import Optional


class DiscoveryError(Exception):
    """Base class for discovery errors."""


class InvalidUrlError(DiscoveryError, ValueError):
    """Raised when a URL cannot be parsed as an absolute URL with a hostname."""

    def __init__(self, url: str, reason: str = "not an absolute URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class FetchError(DiscoveryError):
    """Raised when a request fails before an HTTP status is received."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"{message} ({url})")


class FetchTimeoutError(FetchError):
    """Raised when a request exceeds its timeout."""

    def __init__(self, url: str, timeout: float):
        self.timeout = timeout
        super().__init__(url, f"Request timeout after {timeout}s")


class TransportError(FetchError):
    """Raised on connection, DNS, TLS or protocol failures."""


class HttpStatusError(DiscoveryError):
    """Raised when a sitemap request gets a non-2xx response.

    Page analysis records 4xx/5xx pages as data instead of raising.
    """

    def __init__(self, url: str, status_code: int):
        self.url = url
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} for {url}")


class RobotsDisallowedError(DiscoveryError):
    """Raised when robots.txt disallows auditing the site."""

    def __init__(self, url: str, reason: Optional[str] = None):
        self.url = url
        self.reason = reason
        super().__init__(reason or f"Crawling {url} is disallowed by robots.txt")


class SiteUnreachableError(DiscoveryError):
    """Raised when the root URL of the audited site cannot be fetched."""

    def __init__(self, url: str, message: Optional[str] = None):
        self.url = url
        super().__init__(message or f"Could not reach {url}")
