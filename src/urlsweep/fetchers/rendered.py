"""
Browser-based fetchers using Playwright for JavaScript-rendered content.

RenderedFetcher is the recursive-mode primary traversal. DomDescentFetcher
is a second, independent descent that follows every href/src attribute it
can find on a page.
"""
import logging
from typing import Callable, List, Optional
from urllib.parse import urljoin, urlparse

from urlsweep.config import FetchConfig
from urlsweep.constants import DOM_LINK_SELECTOR
from urlsweep.fetchers.base import Emit, FailureHook, FetchBackend, traverse, visit_key
from urlsweep.fetchers.browser import DOM_LINKS_SCRIPT, HREF_SCRIPT, BrowserSession
from urlsweep.infrastructure import ProxyPool
from urlsweep.policy import UrlPolicy

logger = logging.getLogger(__name__)

SessionFactory = Callable[[FetchConfig, ProxyPool], BrowserSession]


class RenderedFetcher(FetchBackend):
    """
    Full-rendering traversal.

    Loads pages in Chromium, waits for network idleness and enqueues the
    same-host links it sees, subject to the URL policy.
    """

    name = "rendered"

    def __init__(
        self,
        config: FetchConfig,
        proxies: Optional[ProxyPool] = None,
        policy: Optional[UrlPolicy] = None,
        session_factory: SessionFactory = BrowserSession,
    ):
        super().__init__(config, proxies, policy)
        self._session_factory = session_factory

    async def discover(self, url: str, emit: Emit, on_failure: Optional[FailureHook] = None) -> None:
        origin_host = urlparse(url).hostname

        async with self._session_factory(self.config, self.proxies) as session:
            visited = await traverse(
                url,
                lambda page_url: session.collect_links(page_url, "a[href]", HREF_SCRIPT),
                emit,
                follow=lambda link: self.policy.follows(link, origin_host),
                on_error=lambda page_url, e: self.handle_failure(page_url, e, on_failure),
                concurrency=self.config.concurrency,
                max_pages=self.config.max_pages,
            )

        logger.debug(f"{self.name}: visited {visited} pages from {url}")


def should_descend(url: str) -> bool:
    """Pages whose path is ``/`` or ends with ``/`` are recorded but not visited."""
    path = urlparse(url).path
    return bool(path) and path != "/" and not path.endswith("/")


class DomDescentFetcher(FetchBackend):
    """
    Manually driven descent over every anchor, image, href and src.

    Uses an explicit worklist and a visited set scoped to one call. Links are
    resolved against the page they were found on; same-host ones are
    emitted and, unless their path ends with ``/``, visited in turn.
    """

    name = "descent"

    def __init__(
        self,
        config: FetchConfig,
        proxies: Optional[ProxyPool] = None,
        policy: Optional[UrlPolicy] = None,
        session_factory: SessionFactory = BrowserSession,
    ):
        super().__init__(config, proxies, policy)
        self._session_factory = session_factory

    async def discover(self, url: str, emit: Emit, on_failure: Optional[FailureHook] = None) -> None:
        origin_host = (urlparse(url).hostname or "").lower()
        visited = {visit_key(url)}
        worklist: List[str] = [url]
        pages = 0

        async with self._session_factory(self.config, self.proxies) as session:
            while worklist:
                current = worklist.pop()
                if self.config.max_pages is not None and pages >= self.config.max_pages:
                    break
                pages += 1

                try:
                    links = await session.collect_links(current, DOM_LINK_SELECTOR, DOM_LINKS_SCRIPT)
                except Exception as e:
                    self.handle_failure(current, e, on_failure)
                    continue

                descend = []
                for link in links or []:
                    try:
                        absolute = urljoin(current, link)
                        hostname = urlparse(absolute).hostname
                    except ValueError:
                        continue
                    key = visit_key(absolute)
                    if (hostname or "").lower() != origin_host or key in visited:
                        continue

                    visited.add(key)
                    await emit(absolute)
                    if should_descend(absolute) and self.policy.accepts(absolute):
                        descend.append(absolute)

                # Depth-first, in document order
                worklist.extend(reversed(descend))

        logger.debug(f"{self.name}: visited {pages} pages from {url}")
