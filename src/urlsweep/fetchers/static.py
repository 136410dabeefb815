"""HTTP fetchers that extract links from raw markup without running scripts."""

import asyncio
import logging
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import httpx

from urlsweep.config import FetchConfig
from urlsweep.constants import LIGHTWEIGHT_MAX_CONNECTIONS
from urlsweep.fetchers.base import Emit, FailureHook, FetchBackend, extract_links, traverse
from urlsweep.fetchers.http_client import ProxiedClients
from urlsweep.infrastructure import ProxyPool
from urlsweep.policy import UrlPolicy

logger = logging.getLogger(__name__)


class StaticFetcher(FetchBackend):
    """
    Server-rendered markup traversal over httpx and BeautifulSoup.

    Used instead of the rendered fetcher when recursive mode is off. Visits
    same-host links that pass the URL policy, ``config.concurrency`` pages
    at a time.
    """

    name = "static"
    link_tags: Tuple[str, ...] = ("a", "area")

    def __init__(
        self,
        config: FetchConfig,
        proxies: Optional[ProxyPool] = None,
        policy: Optional[UrlPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config, proxies, policy)
        self._transport = transport

    @property
    def concurrency(self) -> int:
        return self.config.concurrency

    def _limits(self) -> httpx.Limits:
        return httpx.Limits(max_connections=self.concurrency)

    async def _fetch_links(self, clients: ProxiedClients, url: str) -> Optional[List[str]]:
        response = await clients.get(url)
        if response.status_code >= 400:
            logger.debug(f"{self.name}: {url} returned {response.status_code}")
            return None

        content_type = (response.headers.get("content-type") or "").lower()
        if "html" not in content_type:
            return []

        return extract_links(response.text, str(response.url), self.link_tags)

    async def discover(self, url: str, emit: Emit, on_failure: Optional[FailureHook] = None) -> None:
        origin_host = urlparse(url).hostname

        async with ProxiedClients(self.config, self.proxies, self._limits(), self._transport) as clients:
            visited = await traverse(
                url,
                lambda page_url: self._fetch_links(clients, page_url),
                emit,
                follow=lambda link: self.policy.follows(link, origin_host),
                on_error=lambda page_url, e: self.handle_failure(page_url, e, on_failure),
                concurrency=self.concurrency,
                max_pages=self.config.max_pages,
            )

        logger.debug(f"{self.name}: visited {visited} pages from {url}")


class LightweightFetcher(StaticFetcher):
    """
    Generic scraping pass with its own link extraction.

    Independent of the primary fetcher and never more than ten requests in
    flight, whatever the configured concurrency.
    """

    name = "lightweight"
    link_tags = ("a",)

    def __init__(
        self,
        config: FetchConfig,
        proxies: Optional[ProxyPool] = None,
        policy: Optional[UrlPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config, proxies, policy, transport)
        self._slots = asyncio.Semaphore(LIGHTWEIGHT_MAX_CONNECTIONS)

    @property
    def concurrency(self) -> int:
        return LIGHTWEIGHT_MAX_CONNECTIONS

    async def _fetch_links(self, clients: ProxiedClients, url: str) -> Optional[List[str]]:
        async with self._slots:
            return await super()._fetch_links(clients, url)
