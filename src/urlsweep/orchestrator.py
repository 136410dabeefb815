"""Crawl orchestration: policy gate, concurrent fan-out and iterative re-crawl."""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Type

from urlsweep.config import CrawlConfig, FetchConfig, FetchStrategy
from urlsweep.constants import INITIAL_CRAWL_DEPTH, MAX_CRAWL_DEPTH
from urlsweep.discovery import TARGET_SOURCE, CrawlStats, DiscoveryCollector, DiscoverySet
from urlsweep.errors import report_failure
from urlsweep.fetchers import (
    ArchiveFetcher,
    DomDescentFetcher,
    FetchBackend,
    LightweightFetcher,
    RenderedFetcher,
    StaticFetcher,
)
from urlsweep.infrastructure import ProxyPool, create_proxy_pool
from urlsweep.output_manager import OutputAggregator
from urlsweep.policy import UrlPolicy, canonical_target

logger = logging.getLogger(__name__)

PRIMARY_FETCHERS: Dict[FetchStrategy, Type[FetchBackend]] = {
    FetchStrategy.RENDERED: RenderedFetcher,
    FetchStrategy.STATIC: StaticFetcher,
}


def build_backends(
    strategy: FetchStrategy,
    config: FetchConfig,
    proxies: ProxyPool,
    policy: UrlPolicy,
) -> List[FetchBackend]:
    """Create the four backends launched for every target."""
    return [
        PRIMARY_FETCHERS[strategy](config, proxies, policy),
        DomDescentFetcher(config, proxies, policy),
        LightweightFetcher(config, proxies, policy),
        ArchiveFetcher(config, proxies, policy),
    ]


class CrawlOrchestrator:
    """Runs every fetch backend against each target and merges what they find.

    Per target: normalize, check scope and extension policy, fan out to all
    backends concurrently, let the collector merge their discoveries, and
    in iterative mode repeat for each newly discovered URL until the depth
    ceiling is reached. Targets are processed one after another.
    """

    def __init__(
        self,
        config: CrawlConfig,
        aggregator: Optional[OutputAggregator] = None,
        backends: Optional[Sequence[FetchBackend]] = None,
        proxies: Optional[ProxyPool] = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Run configuration
            aggregator: Receives every accepted Discovery Record
            backends: Backends to fan out to (built from config if None)
            proxies: Proxy pool (built from config if None)

        Raises:
            InvalidProxyError: If the configured proxy source is malformed
            UnsupportedProxySchemeError: If a proxy uses an unsupported scheme
        """
        self.config = config
        self.policy = UrlPolicy(config.scope, config.excluded_extensions)
        self.proxies = proxies if proxies is not None else create_proxy_pool(config.proxy, config.proxy_auth)
        self.aggregator = aggregator if aggregator is not None else OutputAggregator(
            config.output, config.json_output
        )
        self.strategy = config.strategy
        if backends is None:
            backends = build_backends(self.strategy, config.fetch_config(), self.proxies, self.policy)
        self.backends: List[FetchBackend] = list(backends)
        self.stats: List[CrawlStats] = []
        self._collectors: Set[DiscoveryCollector] = set()

        if config.force_redirect:
            logger.debug("Redirects are followed by every backend; --force-redirect has no extra effect")

        logger.info(
            f"Strategy: {self.strategy.value}, backends: {', '.join(b.name for b in self.backends)}, "
            f"proxies: {self.proxies.pool_size}, iterative: {config.iterative}"
        )

    async def run(self, targets: Iterable[str]) -> List[CrawlStats]:
        """Crawl each target in turn."""
        for target in targets:
            await self.crawl_target(target)
        return self.stats

    async def run_with_timeout(self, targets: Iterable[str]) -> bool:
        """Crawl all targets, abandoning the run when the global timeout elapses.

        On timeout the events already queued are accepted and the crawl task is
        cancelled, but its cleanup is left to whoever closes the event loop.

        Returns:
            True if every target finished, False if the timeout fired
        """
        if self.config.timeout is None:
            await self.run(targets)
            return True

        crawl = asyncio.create_task(self.run(targets))
        done, _ = await asyncio.wait({crawl}, timeout=self.config.timeout)
        if crawl in done:
            crawl.result()
            return True

        # Keep what was reported; backend cleanup is not awaited
        for collector in list(self._collectors):
            collector.drain()
        crawl.cancel()
        logger.warning("Timeout reached.")
        return False

    async def crawl_target(self, target: str) -> Optional[CrawlStats]:
        """Crawl one root target with a fresh Discovery Set.

        Returns:
            Statistics for the target, or None if policy rejected it

        Raises:
            InvalidTargetError: If the target cannot be normalized
        """
        url = canonical_target(target)

        reason = self.policy.rejection_reason(url)
        if reason is not None:
            logger.info(f"Skipping {url}: {reason}")
            return None

        logger.info(f"Crawling {url}")
        stats = CrawlStats(target=url)
        self.stats.append(stats)
        try:
            await self._crawl_pass(url, INITIAL_CRAWL_DEPTH, DiscoverySet(), stats)
        finally:
            stats.log_summary()
        return stats

    async def _crawl_pass(self, url: str, depth: int, discovered: DiscoverySet, stats: CrawlStats) -> List[str]:
        """Fan out to every backend once, then recurse on new URLs if iterative."""
        stats.passes += 1
        stats.max_depth = max(stats.max_depth, depth)
        logger.debug(f"Pass at depth {depth}: {url}")

        collector = DiscoveryCollector(self.policy, discovered, self.aggregator.add, stats)
        consumer = asyncio.create_task(collector.run())
        self._collectors.add(collector)
        await collector.emitter(TARGET_SOURCE)(url)

        try:
            await asyncio.gather(
                *(self._run_backend(backend, url, collector, stats) for backend in self.backends),
                return_exceptions=True,
            )
        finally:
            # Drain what the backends already reported, even when cancelled
            await collector.stop()
            new_urls = await consumer
            self._collectors.discard(collector)

        new_urls = [new_url for new_url in new_urls if new_url != url]
        if not self.config.iterative or not new_urls:
            return new_urls
        if depth >= MAX_CRAWL_DEPTH:
            logger.info(f"Depth ceiling {MAX_CRAWL_DEPTH} reached; not re-crawling {len(new_urls)} URLs")
            return new_urls

        logger.info(f"Re-crawling {len(new_urls)} new URLs at depth {depth + 1}")
        for new_url in new_urls:
            await self._crawl_pass(new_url, depth + 1, discovered, stats)
        return new_urls

    async def _run_backend(
        self,
        backend: FetchBackend,
        url: str,
        collector: DiscoveryCollector,
        stats: CrawlStats,
    ) -> None:
        """Run one backend; its failure never reaches the other backends."""
        try:
            await backend.discover(url, collector.emitter(backend.name), on_failure=stats.record_failure)
        except Exception as e:
            suppressed = report_failure(backend.name, url, e)
            stats.record_failure(backend.name, suppressed)
