# src/urlsweep/constants.py
"""Centralized constants for urlsweep.

This module contains magic numbers and fixed values that are used across
multiple modules. For user-configurable options, see config.py and
CrawlConfig.
"""

# =============================================================================
# Orchestration Constants
# =============================================================================

# Iterative crawling never re-invokes orchestration at or beyond this depth
MAX_CRAWL_DEPTH = 3

# First depth assigned to a root target
INITIAL_CRAWL_DEPTH = 1


# =============================================================================
# Fetch Constants
# =============================================================================

# Default number of parallel requests for traversal backends
DEFAULT_CONCURRENCY = 5

# The lightweight fetcher never has more connections than this in flight
LIGHTWEIGHT_MAX_CONNECTIONS = 10

# Default per-request timeout in seconds
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30

# Scheme prepended to targets that have none
DEFAULT_TARGET_SCHEME = "http"

# Default ports used to fill Discovery Record metadata
DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
}

# Wayback Machine CDX index
ARCHIVE_CDX_URL = "https://web.archive.org/cdx/search/cdx"

# Attributes collected by the manual DOM descent
DOM_LINK_SELECTOR = "a, img, [href], [src]"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


# =============================================================================
# Error Classification Constants
# =============================================================================

# Failure messages containing any of these are expected network noise
SUPPRESSED_ERROR_MARKERS = (
    # TLS hostname mismatch
    "ERR_CERT_COMMON_NAME_INVALID",
    "Hostname mismatch",
    "does not match certificate",
    "doesn't match either of",
    "certificate is not valid for",
    # Connection refusals
    "ERR_CONNECTION_REFUSED",
    "ECONNREFUSED",
    "Connection refused",
    "All connection attempts failed",
    # Timeouts
    "ERR_TIMED_OUT",
    "ETIMEDOUT",
    "Timeout",
    "timed out",
    # Crawler statistics notices
    "Statistics are empty",
    "No statistics",
)


# =============================================================================
# Output Constants
# =============================================================================

TEXT_OUTPUT_EXTENSIONS = frozenset({".txt"})
JSON_OUTPUT_EXTENSIONS = frozenset({".json"})

# Indentation used for structured output
JSON_INDENT = 2
