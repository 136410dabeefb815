"""Unit tests for the Playwright-based fetchers with a scripted browser session."""

import pytest

from urlsweep.config import FetchConfig
from urlsweep.constants import DOM_LINK_SELECTOR
from urlsweep.fetchers import BrowserSession, DomDescentFetcher, RenderedFetcher
from urlsweep.fetchers.rendered import should_descend
from urlsweep.infrastructure import ProxyPool
from urlsweep.policy import UrlPolicy


class FakeSession:
    """Stands in for BrowserSession; ``pages`` maps URLs to the links they show."""

    def __init__(self, pages, failures=None):
        self.pages = pages
        self.failures = failures or {}
        self.calls = []
        self.entered = 0
        self.exited = 0

    def factory(self, config, proxies):
        return self

    async def __aenter__(self):
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited += 1
        return False

    async def collect_links(self, url, selector, script):
        self.calls.append((url, selector))
        if url in self.failures:
            raise self.failures[url]
        links = self.pages.get(url)
        if links is None:
            return None
        return [url] + links


PAGES = {
    "http://example.com": [
        "http://example.com/a",
        "/b/",
        "http://other.com/x",
        "http://example.com/img.png",
    ],
    "http://example.com/a": ["http://example.com/", "http://example.com/c"],
    "http://example.com/c": [],
}


async def _discover(fetcher, url):
    emitted, failures = [], []

    async def emit(link):
        emitted.append(link)

    await fetcher.discover(url, emit, lambda source, suppressed: failures.append((source, suppressed)))
    return emitted, failures


class TestShouldDescend:
    """Directory-like paths are recorded but not visited."""

    @pytest.mark.parametrize("url,expected", [
        ("http://example.com", False),
        ("http://example.com/", False),
        ("http://example.com/docs/", False),
        ("http://example.com/docs", True),
        ("http://example.com/docs/page.html", True),
    ])
    def test_should_descend(self, url, expected):
        assert should_descend(url) is expected


class TestDomDescentFetcher:
    """Tests for the manual worklist descent."""

    @pytest.mark.asyncio
    async def test_descends_depth_first(self):
        session = FakeSession(PAGES)
        fetcher = DomDescentFetcher(FetchConfig(), ProxyPool(), UrlPolicy(), session_factory=session.factory)

        emitted, failures = await _discover(fetcher, "http://example.com")

        assert emitted == [
            "http://example.com/a",
            "http://example.com/b/",
            "http://example.com/img.png",
            "http://example.com/c",
        ]
        assert [url for url, _ in session.calls] == [
            "http://example.com",
            "http://example.com/a",
            "http://example.com/c",
            "http://example.com/img.png",
        ]
        assert all(selector == DOM_LINK_SELECTOR for _, selector in session.calls)
        assert failures == []
        assert session.entered == session.exited == 1

    @pytest.mark.asyncio
    async def test_excluded_urls_are_not_visited(self):
        session = FakeSession(PAGES)
        fetcher = DomDescentFetcher(
            FetchConfig(), ProxyPool(), UrlPolicy(excluded_extensions="png"), session_factory=session.factory
        )

        await _discover(fetcher, "http://example.com")

        assert "http://example.com/img.png" not in [url for url, _ in session.calls]

    @pytest.mark.asyncio
    async def test_page_failure_is_isolated(self):
        session = FakeSession(PAGES, failures={"http://example.com/a": RuntimeError("renderer crashed")})
        fetcher = DomDescentFetcher(FetchConfig(), ProxyPool(), UrlPolicy(), session_factory=session.factory)

        emitted, failures = await _discover(fetcher, "http://example.com")

        assert failures == [("descent", False)]
        assert "http://example.com/img.png" in [url for url, _ in session.calls]
        assert "http://example.com/c" not in emitted

    @pytest.mark.asyncio
    async def test_timeout_failure_is_suppressed(self):
        session = FakeSession(PAGES, failures={"http://example.com": TimeoutError("Timeout 30000ms exceeded.")})
        fetcher = DomDescentFetcher(FetchConfig(), ProxyPool(), UrlPolicy(), session_factory=session.factory)

        emitted, failures = await _discover(fetcher, "http://example.com")

        assert emitted == []
        assert failures == [("descent", True)]

    @pytest.mark.asyncio
    async def test_max_pages(self):
        session = FakeSession(PAGES)
        fetcher = DomDescentFetcher(FetchConfig(max_pages=1), ProxyPool(), UrlPolicy(), session_factory=session.factory)

        await _discover(fetcher, "http://example.com")

        assert len(session.calls) == 1


class TestRenderedFetcher:
    """Tests for the rendered traversal."""

    @pytest.mark.asyncio
    async def test_follows_same_host_anchors(self):
        session = FakeSession(PAGES)
        fetcher = RenderedFetcher(FetchConfig(concurrency=2), ProxyPool(), UrlPolicy(), session_factory=session.factory)

        emitted, failures = await _discover(fetcher, "http://example.com")

        assert set(emitted) == {
            "http://example.com",
            "http://example.com/a",
            "http://example.com/img.png",
            "http://example.com/",
            "http://example.com/c",
        }
        assert "http://other.com/x" not in emitted
        assert all(selector == "a[href]" for _, selector in session.calls)
        assert [url for url, _ in session.calls].count("http://example.com") == 1
        assert "http://example.com/" not in [url for url, _ in session.calls]
        assert failures == []

    @pytest.mark.asyncio
    async def test_policy_limits_enqueueing(self):
        session = FakeSession(PAGES)
        fetcher = RenderedFetcher(
            FetchConfig(), ProxyPool(), UrlPolicy(excluded_extensions="png"), session_factory=session.factory
        )

        emitted, _ = await _discover(fetcher, "http://example.com")

        assert "http://example.com/img.png" not in emitted
        assert "http://example.com/img.png" not in [url for url, _ in session.calls]


class TestBrowserSession:
    """Tests that need no browser."""

    @pytest.mark.asyncio
    async def test_page_requires_running_browser(self):
        session = BrowserSession(FetchConfig(), ProxyPool())

        with pytest.raises(RuntimeError):
            async with session.page():
                pass


@pytest.mark.integration
class TestBrowserSessionIntegration:
    """Launches a real Chromium; run with ``pytest -m integration``."""

    @pytest.mark.asyncio
    async def test_collect_links_from_live_page(self):
        async with BrowserSession(FetchConfig(), ProxyPool()) as session:
            links = await session.collect_links("https://example.com/", "a[href]", "elements => elements.map(el => el.href)")

        assert links is not None
        assert links[0].startswith("https://example.com")
