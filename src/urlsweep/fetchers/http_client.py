"""httpx clients for the HTTP-based backends, one per egress proxy."""

import logging
from typing import Dict, Optional

import httpx

from urlsweep.config import FetchConfig
from urlsweep.infrastructure import ProxyPool

logger = logging.getLogger(__name__)


class ProxiedClients:
    """
    Lazily created ``httpx.AsyncClient`` instances keyed by proxy.

    A proxy is picked for every request; reusing one client per proxy keeps
    connection pooling without tying requests to a single egress.

    Use as an async context manager so every client gets closed:

        async with ProxiedClients(config, proxies) as clients:
            response = await clients.get(url)
    """

    def __init__(
        self,
        config: FetchConfig,
        proxies: ProxyPool,
        limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._proxies = proxies
        self._limits = limits or httpx.Limits(max_connections=max(config.concurrency, 10))
        self._transport = transport
        self._clients: Dict[Optional[str], httpx.AsyncClient] = {}

    async def __aenter__(self) -> "ProxiedClients":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def client_for(self, proxy: Optional[str]) -> httpx.AsyncClient:
        """Get (or create) the client routed through ``proxy``."""
        client = self._clients.get(proxy)
        if client is None:
            client = httpx.AsyncClient(
                proxy=proxy,
                verify=self._config.verify_ssl,
                timeout=self._config.request_timeout,
                follow_redirects=self._config.follow_redirects,
                headers={"User-Agent": self._config.user_agent},
                limits=self._limits,
                transport=self._transport,
            )
            self._clients[proxy] = client
            logger.debug(f"Created HTTP client (proxy={proxy is not None})")
        return client

    async def get(self, url: str, **kwargs) -> httpx.Response:
        """GET ``url`` through a freshly picked proxy."""
        client = self.client_for(self._proxies.pick_httpx())
        return await client.get(url, **kwargs)

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
