"""
Headless-render collaborator for JavaScript-populated pages.

The page fetcher only depends on the ``Renderer`` protocol. ``PlaywrightRenderer``
is the bundled implementation, built on rebrowser-playwright:

    async with PlaywrightRenderer() as renderer:
        fetcher = PageFetcher(renderer=renderer)
        analysis = await fetcher.analyze_page(url, use_browser=True)
"""

import logging
from typing import Protocol, runtime_checkable

from seo_discovery.config import DiscoveryConfig
from seo_discovery.constants import DEFAULT_USER_AGENT, PAGE_FETCH_TIMEOUT_SECONDS, RENDER_SETTLE_MS
from seo_discovery.models import RenderResult

logger = logging.getLogger(__name__)


@runtime_checkable
class Renderer(Protocol):
    """Anything that can return the rendered DOM of a URL."""

    async def render(self, url: str) -> RenderResult:
        ...


class PlaywrightRenderer:
    """Render pages in headless Chromium.

    Designed to be used as an async context manager that owns the browser
    lifecycle. Each render uses a fresh page in a shared context.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = PAGE_FETCH_TIMEOUT_SECONDS,
        settle_ms: int = RENDER_SETTLE_MS,
        headless: bool = True,
    ):
        """
        Initialize the renderer.

        Args:
            user_agent: User agent for the browser context
            timeout: Navigation timeout in seconds
            settle_ms: Time to let client-side scripts run after navigation
            headless: Run the browser without a window
        """
        self.user_agent = user_agent
        self.timeout = timeout * 1000  # Playwright uses milliseconds
        self.settle_ms = settle_ms
        self.headless = headless
        self._playwright = None
        self._browser = None
        self._context = None

    @classmethod
    def from_config(cls, config: DiscoveryConfig) -> "PlaywrightRenderer":
        """Renderer sharing the page fetch timeout and user agent of a run."""
        return cls(user_agent=config.user_agent, timeout=config.page_timeout)

    async def __aenter__(self) -> "PlaywrightRenderer":
        """Enter async context manager, launching browser."""
        try:
            from rebrowser_playwright.async_api import async_playwright
        except ImportError:
            raise ImportError(
                "rebrowser-playwright is required for rendered fetching. "
                "Install with: pip install rebrowser-playwright && "
                "python -m rebrowser_playwright install chromium"
            )

        logger.info(f"Launching chromium (headless={self.headless})")
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=["--disable-blink-features=AutomationControlled"],
        )
        self._context = await self._browser.new_context(user_agent=self.user_agent)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing browser."""
        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def render(self, url: str) -> RenderResult:
        """Navigate to a URL and return the rendered DOM.

        Raises:
            RuntimeError: If called outside the context manager
        """
        if self._context is None:
            raise RuntimeError("PlaywrightRenderer must be used as an async context manager")

        page = await self._context.new_page()
        try:
            response = await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout)
            await page.wait_for_timeout(self.settle_ms)
            html = await page.content()
            status = response.status if response else 0
            logger.debug(f"Rendered {url} (status {status}, {len(html)} chars)")
            return RenderResult(html=html, final_url=page.url, status=status)
        finally:
            await page.close()
