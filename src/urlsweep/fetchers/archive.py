"""Historical snapshot discovery through the Wayback Machine CDX index."""

import logging
from typing import List, Optional

import httpx

from urlsweep.config import FetchConfig
from urlsweep.constants import ARCHIVE_CDX_URL
from urlsweep.fetchers.base import Emit, FailureHook, FetchBackend
from urlsweep.fetchers.http_client import ProxiedClients
from urlsweep.infrastructure import ProxyPool
from urlsweep.policy import UrlPolicy

logger = logging.getLogger(__name__)


def parse_cdx_lines(text: str) -> List[str]:
    """Keep the response lines that look like URLs."""
    return [line.strip() for line in text.splitlines() if line.strip().startswith("http")]


class ArchiveFetcher(FetchBackend):
    """
    Lists every archived URL under the target path.

    Only the CDX index is queried; the target itself is never contacted.
    """

    name = "archive"

    def __init__(
        self,
        config: FetchConfig,
        proxies: Optional[ProxyPool] = None,
        policy: Optional[UrlPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cdx_url: str = ARCHIVE_CDX_URL,
    ):
        super().__init__(config, proxies, policy)
        self._transport = transport
        self.cdx_url = cdx_url

    @staticmethod
    def query_params(url: str) -> dict:
        return {
            "url": f"{url.rstrip('/')}/*",
            "output": "text",
            "fl": "original",
            "collapse": "urlkey",
        }

    async def discover(self, url: str, emit: Emit, on_failure: Optional[FailureHook] = None) -> None:
        async with ProxiedClients(self.config, self.proxies, transport=self._transport) as clients:
            response = await clients.get(self.cdx_url, params=self.query_params(url))
            response.raise_for_status()

        urls = parse_cdx_lines(response.text)
        logger.debug(f"{self.name}: {len(urls)} archived URLs under {url}")
        for archived in urls:
            await emit(archived)
