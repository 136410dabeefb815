"""Exceptions and failure classification for urlsweep.

Configuration problems are fatal and surface as ``ConfigurationError``
subclasses, which the CLI turns into a non-zero exit. Network failures
raised by fetch backends are never fatal: they are run through
``should_suppress`` and either dropped silently or logged.
"""

import logging
from typing import Optional

from urlsweep.constants import SUPPRESSED_ERROR_MARKERS

logger = logging.getLogger(__name__)


class UrlsweepError(Exception):
    """Base class for all urlsweep errors."""


class ConfigurationError(UrlsweepError):
    """Raised when the run cannot start because of bad options or input."""


class InvalidTargetError(ConfigurationError):
    """Raised when a target cannot be normalized into an http(s) URL."""

    def __init__(self, target: str, reason: Optional[str] = None):
        self.target = target
        self.reason = reason
        message = f"Invalid URL: {target!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidProxyError(ConfigurationError):
    """Raised when a proxy URI has no host or an unusable port."""


class UnsupportedProxySchemeError(ConfigurationError):
    """Raised when a proxy URI uses a scheme no transport supports."""

    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(f"Unsupported proxy scheme: {scheme!r}")


class InputSourceError(ConfigurationError):
    """Raised when no target source is available or a list file is unreadable."""


class OutputError(UrlsweepError):
    """Raised when results cannot be rendered to the requested destination."""


def should_suppress(message: str) -> bool:
    """Return True if a failure message is known, benign network noise.

    Several backends routinely fail on the same URL for reasons that say
    nothing about the links on the page (certificate name mismatches,
    refused connections, timeouts), so those are not worth reporting.
    """
    if not message:
        return False
    return any(marker in message for marker in SUPPRESSED_ERROR_MARKERS)


def describe_error(error: BaseException) -> str:
    """Render an exception as ``TypeName: message`` for classification."""
    text = str(error)
    name = type(error).__name__
    return f"{name}: {text}" if text else name


def report_failure(source: str, url: str, error: BaseException) -> bool:
    """Classify a backend failure and report it unless it is noise.

    Args:
        source: Name of the backend that failed
        url: URL being fetched when the failure happened
        error: The exception raised

    Returns:
        True if the failure was suppressed, False if it was reported
    """
    message = describe_error(error)
    if should_suppress(message):
        return True

    logger.error(f"{source} error for {url}: {message}")
    return False
