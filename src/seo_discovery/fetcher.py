"""Page fetching and analysis.

Redirects are handled with an explicit two-step protocol instead of letting
the HTTP client follow them silently:

    INITIAL     request with redirects disabled to capture the true status
    REDIRECTED  3xx with a Location header: fetch the target for content
    RESOLVED    a status (and possibly content) is known
    FAILED      timeout or transport error; the page is reported as status 0

4xx/5xx responses are never masked by a followed redirect, and the original
3xx code survives on the record even though content comes from the target.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urljoin

import httpx

from seo_discovery.constants import (
    DEFAULT_USER_AGENT,
    HTTP_ERROR_THRESHOLD,
    HTTP_REDIRECT_MIN,
    PAGE_FETCH_TIMEOUT_SECONDS,
    REDIRECT_WITHOUT_LOCATION_TITLE,
)
from seo_discovery.exceptions import FetchError, FetchTimeoutError, TransportError
from seo_discovery.html_extractor import extract_page_signals
from seo_discovery.models import FetchState, PageAnalysis
from seo_discovery.renderer import Renderer
from seo_discovery.url_utils import try_normalize

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Raw result of the two-step fetch protocol."""

    url: str
    state: FetchState = FetchState.INITIAL
    status_code: int = 0
    html: Optional[str] = None
    location: Optional[str] = None
    final_url: Optional[str] = None
    content_url: Optional[str] = None  # URL the body was served from
    target_status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return HTTP_REDIRECT_MIN <= self.status_code < HTTP_ERROR_THRESHOLD


class PageFetcher:
    """Fetches pages and extracts discovery signals.

    One fetcher belongs to one discovery session: its failure cache
    short-circuits repeat requests for URLs that already timed out or failed
    at the transport level during this run.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = PAGE_FETCH_TIMEOUT_SECONDS,
        renderer: Optional[Renderer] = None,
    ):
        """Initialize the fetcher.

        Args:
            client: HTTP client to use (one is created and owned if None)
            user_agent: User agent header for page requests
            timeout: Per-request timeout in seconds
            renderer: Optional headless-render collaborator
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self.renderer = renderer
        self._client = client
        self._owns_client = client is None
        self.failed_urls: Dict[str, str] = {}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                follow_redirects=False,
            )
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def get(self, url: str, follow_redirects: bool, timeout: Optional[float] = None) -> httpx.Response:
        """GET a URL, translating client errors into the fetch error taxonomy.

        Raises:
            FetchTimeoutError: If the request times out
            TransportError: On connection, protocol or URL errors
        """
        timeout = timeout if timeout is not None else self.timeout
        try:
            return await self.client.get(
                url,
                headers={"User-Agent": self.user_agent},
                follow_redirects=follow_redirects,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(url, timeout) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(url, f"{type(e).__name__}: {e}") from e

    # ------------------------------------------------------------------
    # Two-step fetch protocol
    # ------------------------------------------------------------------

    async def _step_initial(self, outcome: FetchOutcome) -> FetchState:
        response = await self.get(outcome.url, follow_redirects=False)
        outcome.status_code = response.status_code

        if response.status_code >= HTTP_ERROR_THRESHOLD:
            logger.info(f"HTTP {response.status_code} error detected for: {outcome.url}")
            return FetchState.RESOLVED

        if outcome.is_redirect:
            location = response.headers.get("location")
            if not location:
                return FetchState.RESOLVED
            outcome.location = location
            outcome.final_url = try_normalize(location, outcome.url)
            if outcome.final_url is None:
                logger.warning(f"Unusable Location header {location!r} on {outcome.url}")
                return FetchState.RESOLVED
            outcome.content_url = urljoin(outcome.url, location.strip())
            return FetchState.REDIRECTED

        outcome.html = response.text
        outcome.final_url = outcome.url
        outcome.content_url = outcome.url
        return FetchState.RESOLVED

    async def _step_redirected(self, outcome: FetchOutcome) -> FetchState:
        try:
            response = await self.get(outcome.content_url, follow_redirects=True)
        except FetchError as e:
            # The original URL answered; only the target is unreachable
            logger.warning(f"Redirect target unreachable for {outcome.url}: {e}")
            outcome.error = str(e)
            return FetchState.RESOLVED

        outcome.target_status_code = response.status_code
        outcome.html = response.text
        outcome.content_url = str(response.url)
        return FetchState.RESOLVED

    async def fetch(self, url: str) -> FetchOutcome:
        """Run the two-step protocol for a URL.

        Never raises for network problems: the outcome ends in FAILED instead.
        """
        outcome = FetchOutcome(url=url)
        state = FetchState.INITIAL

        while state not in (FetchState.RESOLVED, FetchState.FAILED):
            try:
                if state is FetchState.INITIAL:
                    state = await self._step_initial(outcome)
                elif state is FetchState.REDIRECTED:
                    state = await self._step_redirected(outcome)
            except FetchError as e:
                outcome.error = str(e)
                state = FetchState.FAILED

        outcome.state = state
        return outcome

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def _build_analysis(
        self,
        url: str,
        html: str,
        status_code: int,
        content_url: str,
        fetch_state: FetchState,
    ) -> PageAnalysis:
        signals = extract_page_signals(html, content_url)

        if not (signals.has_title and signals.has_description and signals.has_h1):
            logger.debug(
                f"Metadata issues for {url}: title={signals.has_title}, "
                f"description={signals.has_description}, h1={signals.has_h1}, "
                f"html_length={len(html)}"
            )

        return PageAnalysis(
            url=url,
            title=signals.title,
            status_code=status_code,
            has_title=signals.has_title,
            has_description=signals.has_description,
            has_h1=signals.has_h1,
            image_count=signals.image_count,
            internal_links=signals.internal_links,
            outgoing_links=signals.outgoing_links,
            html=html,
            fetch_state=fetch_state,
        )

    def _analysis_from_outcome(self, outcome: FetchOutcome) -> PageAnalysis:
        url = outcome.url

        if outcome.state is FetchState.FAILED:
            self.failed_urls[url] = outcome.error or "fetch failed"
            logger.warning(f"Could not fetch {url}: {outcome.error}")
            return PageAnalysis.failed(url, error=outcome.error)

        status = outcome.status_code

        if status >= HTTP_ERROR_THRESHOLD:
            return PageAnalysis(
                url=url,
                title=f"HTTP {status} Error",
                status_code=status,
                fetch_state=outcome.state,
            )

        if outcome.is_redirect and outcome.final_url is None:
            return PageAnalysis(
                url=url,
                title=REDIRECT_WITHOUT_LOCATION_TITLE,
                status_code=status,
                fetch_state=outcome.state,
            )

        redirect_fields = {}
        if outcome.is_redirect:
            redirect_fields = dict(
                is_redirect=True,
                original_url=url,
                final_url=outcome.final_url,
                redirect_status_code=status,
            )

        if outcome.html is None:
            analysis = PageAnalysis(
                url=url,
                status_code=status,
                fetch_state=outcome.state,
                error=outcome.error,
            )
        else:
            analysis = self._build_analysis(
                url, outcome.html, status, outcome.content_url or url, outcome.state
            )

        for key, value in redirect_fields.items():
            setattr(analysis, key, value)
        return analysis

    async def _analyze_rendered(self, url: str) -> Optional[PageAnalysis]:
        """Try the rendered-DOM path. Returns None when it should fall back."""
        try:
            result = await self.renderer.render(url)
        except Exception as e:
            logger.warning(f"Browser rendering failed for {url}, falling back to fetch: {e}")
            return None

        if not result.status or result.status >= HTTP_ERROR_THRESHOLD:
            # Let the plain protocol report the true status
            return None

        if try_normalize(result.final_url) != try_normalize(url):
            # Rendering followed a redirect; capture its status over HTTP but
            # keep the rendered content
            outcome = await self.fetch(url)
            if outcome.state is FetchState.FAILED or not outcome.is_redirect:
                return self._build_analysis(
                    url, result.html, result.status, result.final_url, FetchState.RESOLVED
                )
            analysis = self._build_analysis(
                url, result.html, outcome.status_code, result.final_url, FetchState.RESOLVED
            )
            analysis.is_redirect = True
            analysis.original_url = url
            analysis.final_url = outcome.final_url
            analysis.redirect_status_code = outcome.status_code
            return analysis

        return self._build_analysis(url, result.html, result.status, url, FetchState.RESOLVED)

    async def analyze_page(self, url: str, use_browser: bool = False) -> PageAnalysis:
        """Fetch a page and extract its discovery signals.

        Args:
            url: Canonical URL to analyze
            use_browser: Try the headless renderer first (needs a renderer)

        Returns:
            PageAnalysis; status 0 when the page was unreachable
        """
        if url in self.failed_urls:
            logger.debug(f"Skipping {url}: already failed this run ({self.failed_urls[url]})")
            return PageAnalysis.failed(url, error=self.failed_urls[url])

        if use_browser and self.renderer is not None:
            logger.info(f"Using browser rendering for: {url}")
            rendered = await self._analyze_rendered(url)
            if rendered is not None:
                return rendered

        outcome = await self.fetch(url)
        return self._analysis_from_outcome(outcome)
