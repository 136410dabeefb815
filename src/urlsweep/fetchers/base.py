"""Fetch backend contract and the shared link traversal."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Iterable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from urlsweep.config import FetchConfig
from urlsweep.errors import report_failure
from urlsweep.infrastructure import ProxyPool
from urlsweep.policy import UrlPolicy, normalize_candidate

logger = logging.getLogger(__name__)

# Receives every candidate URL a backend discovers
Emit = Callable[[str], Awaitable[None]]

# Told about each failure: (backend name, whether it was suppressed)
FailureHook = Callable[[str, bool], None]

# Fetches one page; returns its links, or None if the page is not usable
FetchLinks = Callable[[str], Awaitable[Optional[List[str]]]]


class FetchBackend(ABC):
    """
    One independent URL discovery strategy.

    Backends share nothing with each other. They get their options and the
    proxy pool explicitly, report candidates through ``emit`` and raise
    only when the top-level call fails; per-page failures inside their own
    traversal are classified and skipped.
    """

    name: str = "backend"

    def __init__(
        self,
        config: FetchConfig,
        proxies: Optional[ProxyPool] = None,
        policy: Optional[UrlPolicy] = None,
    ):
        self.config = config
        self.proxies = proxies if proxies is not None else ProxyPool()
        self.policy = policy if policy is not None else UrlPolicy()

    @abstractmethod
    async def discover(self, url: str, emit: Emit, on_failure: Optional[FailureHook] = None) -> None:
        """Discover URLs reachable from ``url`` and emit each one."""

    def handle_failure(self, url: str, error: BaseException, on_failure: Optional[FailureHook] = None) -> None:
        """Classify a failure that stays inside this backend's traversal."""
        suppressed = report_failure(self.name, url, error)
        if on_failure is not None:
            on_failure(self.name, suppressed)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def extract_links(html: str, base_url: str, tags: Iterable[str] = ("a",)) -> List[str]:
    """Extract href values from the given tags, resolved against ``base_url``."""
    soup = BeautifulSoup(html, "html.parser")
    links = []
    for tag in soup.find_all(list(tags), href=True):
        href = tag["href"].strip()
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:", "data:")):
            continue
        links.append(urljoin(base_url, href))
    return links


def visit_key(url: str) -> str:
    """Key under which a page counts as visited (``/`` and the bare host are one page)."""
    return normalize_candidate(url) or url


async def traverse(
    start_url: str,
    fetch_links: FetchLinks,
    emit: Emit,
    follow: Callable[[str], bool],
    on_error: Callable[[str, BaseException], None],
    concurrency: int = 1,
    max_pages: Optional[int] = None,
) -> int:
    """Breadth-first traversal with a bounded worker pool.

    Every successfully fetched page and every followable link on it is
    emitted. Links accepted by ``follow`` and not yet seen are queued for
    a visit. A failure on one page is passed to ``on_error`` and the
    traversal moves on.

    Args:
        start_url: First page to visit
        fetch_links: Coroutine fetching a page and returning its links
        emit: Sink for discovered URLs
        follow: Whether a link should be visited
        on_error: Called with (url, exception) for each failed page
        concurrency: Number of pages fetched in parallel
        max_pages: Stop queueing new pages after this many (None = unbounded)

    Returns:
        Number of pages visited
    """
    frontier: asyncio.Queue = asyncio.Queue()
    seen = {visit_key(start_url)}
    visited = 0
    frontier.put_nowait(start_url)

    async def worker() -> None:
        nonlocal visited
        while True:
            page_url = await frontier.get()
            try:
                visited += 1
                try:
                    links = await fetch_links(page_url)
                except Exception as e:
                    on_error(page_url, e)
                    continue

                if links is None:
                    continue

                await emit(page_url)
                for link in links:
                    if not follow(link):
                        continue
                    await emit(link)
                    key = visit_key(link)
                    if key in seen:
                        continue
                    if max_pages is not None and len(seen) >= max_pages:
                        continue
                    seen.add(key)
                    frontier.put_nowait(link)
            finally:
                frontier.task_done()

    workers = [asyncio.create_task(worker()) for _ in range(max(1, concurrency))]
    try:
        await frontier.join()
    finally:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

    return visited
