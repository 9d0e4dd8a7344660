"""Shared fixtures: an in-memory website served through httpx.MockTransport."""

from typing import Dict, List, Optional

import httpx
import pytest


def html_page(
    title: Optional[str] = "Page",
    links: Optional[List[str]] = None,
    h1: bool = True,
    description: bool = True,
    images: int = 0,
) -> str:
    """Build a small HTML document."""
    head = []
    if title is not None:
        head.append(f"<title>{title}</title>")
    if description:
        head.append('<meta name="description" content="A page">')

    body = []
    if h1:
        body.append(f"<h1>{title or 'Heading'}</h1>")
    body.extend('<img src="/img.png" alt="">' for _ in range(images))
    body.extend(f'<a href="{href}">{href}</a>' for href in links or [])

    return f"<html><head>{''.join(head)}</head><body>{''.join(body)}</body></html>"


def build_handler(routes: Dict, calls: Optional[List[str]] = None):
    """Serve ``routes``: url -> (status, body[, headers]) or an exception to raise."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)

        route = routes.get(url)
        if route is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(route, Exception):
            raise route

        status, body, *rest = route
        headers = rest[0] if rest else {}
        return httpx.Response(status, text=body, headers=headers)

    return handler


@pytest.fixture
def routes():
    """Mutable route table for the mock site."""
    return {}


@pytest.fixture
def calls():
    """URLs requested from the mock site, in order."""
    return []


@pytest.fixture
def client(routes, calls):
    """AsyncClient wired to the mock site."""
    return httpx.AsyncClient(transport=httpx.MockTransport(build_handler(routes, calls)))


@pytest.fixture
def make_page():
    """Factory for small HTML documents."""
    return html_page
