"""Tests for the page fetcher and its two-step redirect protocol."""

import httpx
import pytest

from seo_discovery.constants import ERROR_PAGE_TITLE, REDIRECT_WITHOUT_LOCATION_TITLE
from seo_discovery.exceptions import FetchTimeoutError, TransportError
from seo_discovery.fetcher import PageFetcher
from seo_discovery.models import FetchState, PageRecord, PageSource, RenderResult
from seo_discovery.renderer import PlaywrightRenderer, Renderer

BASE = "https://example.com"


class FakeRenderer:
    """Renderer returning a canned result, or raising."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.rendered = []

    async def render(self, url):
        self.rendered.append(url)
        if self.error is not None:
            raise self.error
        return self.result


class TestFetchProtocol:
    """Test cases for status and redirect handling."""

    @pytest.fixture
    def fetcher(self, client):
        """Fetcher on the mock site."""
        return PageFetcher(client=client)

    @pytest.mark.asyncio
    async def test_ok_page(self, fetcher, routes, make_page):
        """A 200 page is analyzed from its own body."""
        routes[f"{BASE}/"] = (200, make_page(title="Home", links=["/a", "/b"], images=1))

        analysis = await fetcher.analyze_page(f"{BASE}/")

        assert analysis.status_code == 200
        assert analysis.title == "Home"
        assert analysis.has_h1 is True
        assert analysis.has_description is True
        assert analysis.image_count == 1
        assert analysis.internal_links == [f"{BASE}/a", f"{BASE}/b"]
        assert analysis.link_count == 2
        assert analysis.is_redirect is False
        assert analysis.fetch_state is FetchState.RESOLVED
        assert analysis.html is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 410, 500, 503])
    async def test_error_status_returned_immediately(self, fetcher, routes, status):
        """4xx/5xx are reported with an error title and no content."""
        routes[f"{BASE}/missing"] = (status, "<html><title>Oops</title></html>")

        analysis = await fetcher.analyze_page(f"{BASE}/missing")

        assert analysis.status_code == status
        assert analysis.title == f"HTTP {status} Error"
        assert analysis.html is None
        assert analysis.has_title is False

    @pytest.mark.asyncio
    async def test_permanent_redirect_keeps_original_status(self, fetcher, routes, make_page):
        """A 301 keeps its status while content comes from the target."""
        routes[f"{BASE}/old"] = (301, "", {"location": "/new-path"})
        routes[f"{BASE}/new-path"] = (200, make_page(title="New Page"))

        analysis = await fetcher.analyze_page(f"{BASE}/old")

        assert analysis.status_code == 301
        assert analysis.redirect_status_code == 301
        assert analysis.is_redirect is True
        assert analysis.original_url == f"{BASE}/old"
        assert analysis.final_url == f"{BASE}/new-path"
        assert analysis.title == "New Page"

        record = PageRecord.from_analysis(f"{BASE}/old", analysis, PageSource.SITEMAP)
        assert record.status_code == 301
        assert record.is_permanent_redirect is True

    @pytest.mark.asyncio
    async def test_temporary_redirect(self, fetcher, routes, make_page):
        """302 is a redirect but not a permanent one."""
        routes[f"{BASE}/tmp"] = (302, "", {"location": f"{BASE}/landing"})
        routes[f"{BASE}/landing"] = (200, make_page(title="Landing"))

        analysis = await fetcher.analyze_page(f"{BASE}/tmp")
        record = PageRecord.from_analysis(f"{BASE}/tmp", analysis, PageSource.CRAWL)

        assert record.status_code == 302
        assert record.is_redirect is True
        assert record.is_permanent_redirect is False

    @pytest.mark.asyncio
    async def test_redirect_links_resolve_against_target(self, fetcher, routes):
        """Relative links on a redirect target resolve against the target URL."""
        routes[f"{BASE}/old"] = (301, "", {"location": "/docs/"})
        routes[f"{BASE}/docs/"] = (200, '<title>Docs</title><a href="intro">Intro</a>')

        analysis = await fetcher.analyze_page(f"{BASE}/old")

        assert analysis.final_url == f"{BASE}/docs"
        assert analysis.outgoing_links == [f"{BASE}/docs/intro"]

    @pytest.mark.asyncio
    async def test_redirect_without_location(self, fetcher, routes):
        """A 3xx without Location has no content to analyze."""
        routes[f"{BASE}/nowhere"] = (302, "")

        analysis = await fetcher.analyze_page(f"{BASE}/nowhere")

        assert analysis.status_code == 302
        assert analysis.title == REDIRECT_WITHOUT_LOCATION_TITLE
        assert analysis.html is None

    @pytest.mark.asyncio
    async def test_unreachable_redirect_target(self, fetcher, routes):
        """The 3xx status survives when only the target fails."""
        routes[f"{BASE}/old"] = (301, "", {"location": "/gone"})
        routes[f"{BASE}/gone"] = httpx.ConnectError("connection refused")

        analysis = await fetcher.analyze_page(f"{BASE}/old")

        assert analysis.status_code == 301
        assert analysis.is_redirect is True
        assert analysis.html is None
        assert analysis.error is not None
        assert f"{BASE}/old" not in fetcher.failed_urls


class TestFetchFailures:
    """Test cases for timeouts, transport errors and the failure cache."""

    @pytest.mark.asyncio
    async def test_timeout_degrades_to_status_zero(self, client, routes):
        """A timeout yields the status-0 error page."""
        routes[f"{BASE}/slow"] = httpx.ReadTimeout("timed out")
        fetcher = PageFetcher(client=client, timeout=0.5)

        analysis = await fetcher.analyze_page(f"{BASE}/slow")

        assert analysis.status_code == 0
        assert analysis.title == ERROR_PAGE_TITLE
        assert analysis.fetch_state is FetchState.FAILED
        assert analysis.is_reachable is False
        assert f"{BASE}/slow" in fetcher.failed_urls

    @pytest.mark.asyncio
    async def test_failure_cache_short_circuits(self, client, routes, calls):
        """A URL that failed is not requested again in the same session."""
        routes[f"{BASE}/down"] = httpx.ConnectError("connection refused")
        fetcher = PageFetcher(client=client)

        first = await fetcher.analyze_page(f"{BASE}/down")
        second = await fetcher.analyze_page(f"{BASE}/down")

        assert first.status_code == 0
        assert second.status_code == 0
        assert calls.count(f"{BASE}/down") == 1

    @pytest.mark.asyncio
    async def test_failure_cache_is_per_fetcher(self, client, routes, calls):
        """A new fetcher starts with an empty failure cache."""
        routes[f"{BASE}/down"] = httpx.ConnectError("connection refused")

        await PageFetcher(client=client).analyze_page(f"{BASE}/down")
        await PageFetcher(client=client).analyze_page(f"{BASE}/down")

        assert calls.count(f"{BASE}/down") == 2

    @pytest.mark.asyncio
    async def test_get_translates_errors(self, client, routes):
        """Client errors map onto the fetch error taxonomy."""
        routes[f"{BASE}/slow"] = httpx.ConnectTimeout("timed out")
        routes[f"{BASE}/down"] = httpx.ConnectError("refused")
        fetcher = PageFetcher(client=client)

        with pytest.raises(FetchTimeoutError):
            await fetcher.get(f"{BASE}/slow", follow_redirects=False)
        with pytest.raises(TransportError):
            await fetcher.get(f"{BASE}/down", follow_redirects=False)


class TestRenderedPath:
    """Test cases for the headless-render collaborator path."""

    def test_fake_renderer_satisfies_protocol(self):
        """Anything with an async render() is a Renderer."""
        assert isinstance(FakeRenderer(), Renderer)

    @pytest.mark.asyncio
    async def test_rendered_content_used(self, client, routes, calls, make_page):
        """Rendered DOM is analyzed without an HTTP request."""
        renderer = FakeRenderer(RenderResult(
            html=make_page(title="Rendered", links=["/js-link"]),
            final_url=f"{BASE}/",
            status=200,
        ))
        fetcher = PageFetcher(client=client, renderer=renderer)

        analysis = await fetcher.analyze_page(f"{BASE}/", use_browser=True)

        assert analysis.title == "Rendered"
        assert analysis.outgoing_links == [f"{BASE}/js-link"]
        assert renderer.rendered == [f"{BASE}/"]
        assert calls == []

    @pytest.mark.asyncio
    async def test_renderer_not_used_without_flag(self, client, routes, make_page):
        """Plain fetch is the default even when a renderer is configured."""
        routes[f"{BASE}/"] = (200, make_page(title="Plain"))
        renderer = FakeRenderer(RenderResult(html="", final_url=f"{BASE}/", status=200))
        fetcher = PageFetcher(client=client, renderer=renderer)

        analysis = await fetcher.analyze_page(f"{BASE}/")

        assert analysis.title == "Plain"
        assert renderer.rendered == []

    @pytest.mark.asyncio
    async def test_render_failure_falls_back(self, client, routes, make_page):
        """Any render error falls back to the HTTP protocol."""
        routes[f"{BASE}/"] = (200, make_page(title="Fallback"))
        renderer = FakeRenderer(error=RuntimeError("browser crashed"))
        fetcher = PageFetcher(client=client, renderer=renderer)

        analysis = await fetcher.analyze_page(f"{BASE}/", use_browser=True)

        assert analysis.status_code == 200
        assert analysis.title == "Fallback"

    @pytest.mark.asyncio
    async def test_render_error_status_falls_back(self, client, routes):
        """An error status from the renderer is re-checked over HTTP."""
        routes[f"{BASE}/"] = (503, "")
        renderer = FakeRenderer(RenderResult(html="", final_url=f"{BASE}/", status=503))
        fetcher = PageFetcher(client=client, renderer=renderer)

        analysis = await fetcher.analyze_page(f"{BASE}/", use_browser=True)

        assert analysis.status_code == 503
        assert analysis.title == "HTTP 503 Error"

    @pytest.mark.asyncio
    async def test_rendered_redirect_keeps_status(self, client, routes, make_page):
        """When rendering followed a redirect, the 3xx status is captured over HTTP."""
        routes[f"{BASE}/old"] = (301, "", {"location": "/new"})
        routes[f"{BASE}/new"] = (200, make_page(title="Over HTTP"))
        renderer = FakeRenderer(RenderResult(
            html=make_page(title="Rendered New"),
            final_url=f"{BASE}/new",
            status=200,
        ))
        fetcher = PageFetcher(client=client, renderer=renderer)

        analysis = await fetcher.analyze_page(f"{BASE}/old", use_browser=True)

        assert analysis.status_code == 301
        assert analysis.redirect_status_code == 301
        assert analysis.final_url == f"{BASE}/new"
        assert analysis.title == "Rendered New"

    @pytest.mark.asyncio
    async def test_playwright_renderer_requires_context(self):
        """Rendering outside the context manager is an error."""
        with pytest.raises(RuntimeError):
            await PlaywrightRenderer().render(f"{BASE}/")
