"""URL discovery crawler with redundant multi-strategy fetching."""

__version__ = "0.1.0"

from urlsweep.config import CrawlConfig, FetchConfig, FetchStrategy, settings
from urlsweep.discovery import CrawlStats, DiscoveryRecord, DiscoverySet
from urlsweep.errors import (
    ConfigurationError,
    InputSourceError,
    InvalidProxyError,
    InvalidTargetError,
    OutputError,
    UnsupportedProxySchemeError,
    UrlsweepError,
)
from urlsweep.orchestrator import CrawlOrchestrator
from urlsweep.output_manager import OutputAggregator
from urlsweep.policy import UrlPolicy, in_scope, is_excluded

__all__ = [
    "__version__",
    "ConfigurationError",
    "CrawlConfig",
    "CrawlOrchestrator",
    "CrawlStats",
    "DiscoveryRecord",
    "DiscoverySet",
    "FetchConfig",
    "FetchStrategy",
    "InputSourceError",
    "InvalidProxyError",
    "InvalidTargetError",
    "OutputAggregator",
    "OutputError",
    "UnsupportedProxySchemeError",
    "UrlPolicy",
    "UrlsweepError",
    "in_scope",
    "is_excluded",
    "settings",
]
