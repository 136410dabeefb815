"""Discovery Set, Discovery Records and the collector task that owns them.

Fetch backends never touch shared state. They put ``Discovery`` events on
an ``asyncio.Queue``; one ``DiscoveryCollector`` per orchestration pass
drains it, applies the URL policy, deduplicates through the target's
``DiscoverySet`` and hands new records to the output aggregator.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterator, List, Optional, Set
from urllib.parse import urlparse

from urlsweep.constants import DEFAULT_PORTS
from urlsweep.policy import UrlPolicy, normalize_candidate

logger = logging.getLogger(__name__)

# Backend name used for the root target itself
TARGET_SOURCE = "target"


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class DiscoveryRecord:
    """One accepted URL plus derived metadata."""
    timestamp: str
    url: str
    path: str
    host: str
    port: Optional[int]

    @classmethod
    def from_url(cls, url: str, timestamp: Optional[str] = None) -> "DiscoveryRecord":
        parsed = urlparse(url)
        return cls(
            timestamp=timestamp or utc_now_iso(),
            url=url,
            path=parsed.path or "/",
            host=parsed.hostname or "",
            port=parsed.port or DEFAULT_PORTS.get(parsed.scheme),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Discovery:
    """A candidate URL emitted by a fetch backend."""
    source: str
    url: str


class DiscoverySet:
    """URLs already accepted for one root target.

    ``add`` is the only way in and performs check-and-insert in one step,
    so a URL can be accepted at most once no matter how many backends
    report it.
    """

    def __init__(self):
        self._urls: Set[str] = set()

    def add(self, url: str) -> bool:
        """Insert ``url``; return True if it was not present before."""
        if url in self._urls:
            return False
        self._urls.add(url)
        return True

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)


@dataclass
class BackendStats:
    """Per-backend counters for one root target."""
    emitted: int = 0
    accepted: int = 0
    failures: int = 0
    suppressed: int = 0


@dataclass
class CrawlStats:
    """Statistics collected during a target's crawl for summary output."""
    target: str
    backends: Dict[str, BackendStats] = field(default_factory=lambda: defaultdict(BackendStats))
    rejected: int = 0
    duplicates: int = 0
    passes: int = 0
    max_depth: int = 0

    def record_failure(self, source: str, suppressed: bool) -> None:
        """Record a backend failure, split by classification."""
        if suppressed:
            self.backends[source].suppressed += 1
        else:
            self.backends[source].failures += 1

    @property
    def accepted(self) -> int:
        return sum(stats.accepted for stats in self.backends.values())

    def log_summary(self) -> None:
        """Log a per-backend summary of the crawl."""
        logger.info(f"{'=' * 50}")
        logger.info(f"CRAWL SUMMARY for {self.target}")
        logger.info(f"  Passes: {self.passes} (max depth {self.max_depth})")
        logger.info(f"  Accepted URLs: {self.accepted}")
        logger.info(f"  Rejected by policy: {self.rejected}, duplicates: {self.duplicates}")
        for source, stats in sorted(self.backends.items()):
            logger.info(
                f"  {source}: emitted={stats.emitted} accepted={stats.accepted} "
                f"errors={stats.failures} suppressed={stats.suppressed}"
            )
        logger.info(f"{'=' * 50}")


class DiscoveryCollector:
    """Single consumer of one pass's discovery events.

    Owns every mutation of the Discovery Set and of the record sink, so
    backends can run concurrently without locks.
    """

    _STOP = object()

    def __init__(
        self,
        policy: UrlPolicy,
        discovered: DiscoverySet,
        on_record: Callable[[DiscoveryRecord], bool],
        stats: Optional[CrawlStats] = None,
    ):
        self.policy = policy
        self.discovered = discovered
        self.on_record = on_record
        self.stats = stats
        self.queue: asyncio.Queue = asyncio.Queue()
        self.new_urls: List[str] = []

    def emitter(self, source: str) -> Callable[[str], Awaitable[None]]:
        """Return the ``emit`` callable handed to one backend."""
        async def emit(url: str) -> None:
            await self.queue.put(Discovery(source, url))
        return emit

    async def stop(self) -> None:
        """Signal that no more events will be produced."""
        await self.queue.put(self._STOP)

    def accept(self, discovery: Discovery) -> Optional[DiscoveryRecord]:
        """Apply policy and dedup to one event; return the new record, if any."""
        if self.stats is not None:
            self.stats.backends[discovery.source].emitted += 1

        url = normalize_candidate(discovery.url)
        if url is None:
            return None

        reason = self.policy.rejection_reason(url)
        if reason is not None:
            logger.debug(f"Skipping {url}: {reason}")
            if self.stats is not None:
                self.stats.rejected += 1
            return None

        if not self.discovered.add(url):
            if self.stats is not None:
                self.stats.duplicates += 1
            return None

        record = DiscoveryRecord.from_url(url)
        self.new_urls.append(url)
        # The sink declines URLs another target already recorded
        if self.on_record(record) and self.stats is not None:
            self.stats.backends[discovery.source].accepted += 1
        return record

    def drain(self) -> int:
        """Accept every event already queued without waiting for more.

        Returns:
            Number of events processed
        """
        drained = 0
        while True:
            try:
                item = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                return drained
            try:
                if item is self._STOP:
                    # Leave the stop marker for the consumer task
                    self.queue.put_nowait(item)
                    return drained
                self.accept(item)
                drained += 1
            finally:
                self.queue.task_done()

    async def run(self) -> List[str]:
        """Consume events until ``stop`` is called; return URLs new in this pass."""
        while True:
            item = await self.queue.get()
            try:
                if item is self._STOP:
                    return self.new_urls
                self.accept(item)
            finally:
                self.queue.task_done()
