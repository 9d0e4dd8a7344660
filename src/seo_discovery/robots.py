"""robots.txt policy checks.

Consulted once before discovery begins. A disallow result aborts the audit;
a missing or unfetchable robots.txt allows everything.
"""

import logging
import re
from typing import Dict, Optional
from urllib.robotparser import RobotFileParser

import httpx

from seo_discovery.constants import DEFAULT_USER_AGENT, ROBOTS_FETCH_TIMEOUT_SECONDS
from seo_discovery.exceptions import RobotsDisallowedError
from seo_discovery.models import RobotsCheckResult
from seo_discovery.url_utils import site_origin

logger = logging.getLogger(__name__)

_COMPATIBLE_RE = re.compile(r"compatible;\s*([^;)\s]+)")


def robots_token(user_agent: str) -> str:
    """Product token robots.txt groups are matched against.

    "Mozilla/5.0 (compatible; SEO-Discovery/1.0)" gives "SEO-Discovery" and
    "SEO-Analyzer-Bot/1.0" gives "SEO-Analyzer-Bot".
    """
    compatible = _COMPATIBLE_RE.search(user_agent)
    product = compatible.group(1) if compatible else user_agent
    return product.split("/")[0].strip() or user_agent


class RobotsChecker:
    """Fetch, parse and query robots.txt for one audit."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = ROBOTS_FETCH_TIMEOUT_SECONDS,
    ):
        """Initialize the checker.

        Args:
            client: Shared HTTP client (a private one is created per fetch if None)
            timeout: robots.txt request timeout in seconds
        """
        self._client = client
        self.timeout = timeout
        self.robots_parsers: Dict[str, Optional[RobotFileParser]] = {}
        self.robots_txt_content: Dict[str, str] = {}

    async def _fetch_robots_txt(self, robots_url: str, user_agent: str) -> Optional[str]:
        headers = {
            "User-Agent": user_agent,
            "Accept": "text/plain,text/html,*/*",
        }
        if self._client is not None:
            response = await self._client.get(
                robots_url, headers=headers, timeout=self.timeout, follow_redirects=True
            )
        else:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(robots_url, headers=headers)

        if response.status_code == 200:
            return response.text

        logger.info(f"No robots.txt found at {robots_url} (status: {response.status_code})")
        return None

    async def load(self, url: str, user_agent: str = DEFAULT_USER_AGENT) -> Optional[RobotFileParser]:
        """Load and parse robots.txt for the URL's origin (cached per origin).

        Args:
            url: Any URL on the site
            user_agent: User agent sent with the request

        Returns:
            Parsed robots.txt, or None when the site has none
        """
        origin = site_origin(url)
        if origin in self.robots_parsers:
            return self.robots_parsers[origin]

        robots_url = f"{origin}/robots.txt"
        parser: Optional[RobotFileParser] = None

        try:
            content = await self._fetch_robots_txt(robots_url, user_agent)
            if content is not None:
                parser = RobotFileParser()
                parser.set_url(robots_url)
                parser.parse(content.splitlines())
                self.robots_txt_content[origin] = content
                logger.info(f"Loaded robots.txt from {robots_url}")
        except httpx.HTTPError as e:
            logger.warning(f"Could not load robots.txt from {robots_url}: {e}")

        self.robots_parsers[origin] = parser
        return parser

    async def is_allowed(self, url: str, user_agent: str = DEFAULT_USER_AGENT) -> RobotsCheckResult:
        """Check whether a URL may be crawled.

        Args:
            url: URL to check
            user_agent: User agent the crawl identifies as

        Returns:
            RobotsCheckResult with allow flag, reason, crawl delay and sitemaps
        """
        parser = await self.load(url, user_agent)
        if parser is None:
            return RobotsCheckResult(allowed=True)

        sitemaps = list(parser.site_maps() or [])
        token = robots_token(user_agent)

        # RobotFileParser only matches the text before the first "/"
        if not (parser.can_fetch(token, url) and parser.can_fetch(user_agent, url)):
            return RobotsCheckResult(
                allowed=False,
                reason=f"Disallowed by robots.txt for User-Agent: {user_agent}",
                sitemaps=sitemaps,
            )

        delay = parser.crawl_delay(token)
        if delay is None:
            delay = parser.crawl_delay(user_agent)
        return RobotsCheckResult(
            allowed=True,
            crawl_delay=float(delay) if delay is not None else None,
            sitemaps=sitemaps,
        )

    async def ensure_allowed(self, url: str, user_agent: str = DEFAULT_USER_AGENT) -> RobotsCheckResult:
        """Like is_allowed, but raise when the URL is disallowed.

        Raises:
            RobotsDisallowedError: If robots.txt disallows the URL
            InvalidUrlError: If the URL cannot be parsed
        """
        result = await self.is_allowed(url, user_agent)
        if not result.allowed:
            logger.error(f"robots.txt blocks auditing {url}: {result.reason}")
            raise RobotsDisallowedError(url, result.reason)
        return result
