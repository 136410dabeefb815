"""URL policy: target normalization, scope matching and extension filtering."""

import logging
import re
from typing import Iterable, Optional, Set, Union
from urllib.parse import urldefrag, urlparse, urlunparse

from urlsweep.constants import DEFAULT_PORTS, DEFAULT_TARGET_SCHEME
from urlsweep.errors import InvalidTargetError

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def normalize_target(target: str) -> str:
    """Normalize a root target so it always carries a scheme.

    Args:
        target: Raw target as typed by the user or read from a list

    Returns:
        The target with ``http://`` prepended when no scheme was given

    Raises:
        InvalidTargetError: If the result is not an http(s) URL with a host
    """
    target = target.strip()
    if not target:
        raise InvalidTargetError(target, "empty")

    if not _SCHEME_RE.match(target):
        target = f"{DEFAULT_TARGET_SCHEME}://{target}"

    try:
        parsed = urlparse(target)
        parsed.port  # raises on a malformed port
    except ValueError as e:
        raise InvalidTargetError(target, str(e)) from e

    if parsed.scheme.lower() not in DEFAULT_PORTS:
        raise InvalidTargetError(target, f"unsupported scheme {parsed.scheme!r}")
    if not parsed.hostname:
        raise InvalidTargetError(target, "missing host")

    return target


def normalize_candidate(url: str) -> Optional[str]:
    """Normalize a discovered URL for deduplication.

    - Drops fragments (#...)
    - Lower-cases scheme and host
    - Removes default ports (:80, :443)
    - Turns an empty path into "/"
    - Keeps any other path and the querystring verbatim

    Returns:
        The normalized URL, or None if it is not a parseable http(s) URL
    """
    if not url:
        return None

    try:
        joined, _ = urldefrag(url.strip())
        parsed = urlparse(joined)
        port = parsed.port
    except ValueError:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in DEFAULT_PORTS or not parsed.hostname:
        return None

    hostname = parsed.hostname.lower()
    if ":" in hostname:
        hostname = f"[{hostname}]"
    if port and port != DEFAULT_PORTS[scheme]:
        netloc = f"{hostname}:{port}"
    else:
        netloc = hostname
    if parsed.username:
        credentials = parsed.username
        if parsed.password:
            credentials = f"{credentials}:{parsed.password}"
        netloc = f"{credentials}@{netloc}"

    return urlunparse((scheme, netloc, parsed.path or "/", parsed.params, parsed.query, ""))


def canonical_target(target: str) -> str:
    """Normalize a root target into the same form as its discovered URLs.

    Raises:
        InvalidTargetError: If the target is not a usable http(s) URL
    """
    url = normalize_target(target)
    canonical = normalize_candidate(url)
    if canonical is None:
        raise InvalidTargetError(url, "cannot be normalized")
    return canonical


class ScopeMatcher:
    """Compiled hostname scope.

    ``*.example.com`` matches ``www.example.com``, ``a.b.example.com`` and
    the bare ``example.com``. Without a pattern every hostname is in scope.
    """

    def __init__(self, pattern: Optional[str] = None):
        self.pattern = pattern.strip().lower() if pattern else None
        self._regex = None
        self._bare = None

        if self.pattern:
            escaped = re.escape(self.pattern).replace(r"\*", ".*")
            self._regex = re.compile(f"^{escaped}$")
            self._bare = self.pattern[2:] if self.pattern.startswith("*.") else self.pattern

    def matches_host(self, hostname: Optional[str]) -> bool:
        """Check a bare hostname against the scope."""
        if self._regex is None:
            return True
        if not hostname:
            return False
        hostname = hostname.lower()
        return bool(self._regex.match(hostname)) or hostname == self._bare

    def __call__(self, url: str) -> bool:
        if self._regex is None:
            return True
        try:
            hostname = urlparse(url).hostname
        except ValueError:
            return False
        return self.matches_host(hostname)

    def __repr__(self) -> str:
        return f"ScopeMatcher({self.pattern!r})"


def in_scope(url: str, scope_pattern: Optional[str] = None) -> bool:
    """Return True if the URL's hostname belongs to the scope pattern."""
    return ScopeMatcher(scope_pattern)(url)


def parse_extensions(value: Union[str, Iterable[str], None]) -> Set[str]:
    """Build an exclusion set from ``"png, .JPG"`` style input."""
    if not value:
        return set()
    items = value.split(",") if isinstance(value, str) else value
    return {item.strip().lstrip(".").lower() for item in items if item and item.strip().lstrip(".")}


def url_extension(url: str) -> Optional[str]:
    """Return the lower-cased extension of the URL's final path segment."""
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    segment = path.rsplit("/", 1)[-1]
    if "." not in segment:
        return None
    extension = segment.rsplit(".", 1)[-1].lower()
    return extension or None


def is_excluded(url: str, excluded_extensions: Iterable[str]) -> bool:
    """Return True if the URL's file extension is in the exclusion set."""
    excluded = excluded_extensions if isinstance(excluded_extensions, (set, frozenset)) else set(excluded_extensions)
    if not excluded:
        return False
    extension = url_extension(url)
    return extension is not None and extension in excluded


class UrlPolicy:
    """Scope and extension rules applied to every target and candidate."""

    def __init__(
        self,
        scope: Optional[str] = None,
        excluded_extensions: Union[str, Iterable[str], None] = None,
    ):
        self.scope = ScopeMatcher(scope)
        self.excluded_extensions = frozenset(parse_extensions(excluded_extensions))

    def rejection_reason(self, url: str) -> Optional[str]:
        """Explain why a URL is rejected, or return None if it is accepted."""
        if not self.scope(url):
            return f"out of scope {self.scope.pattern!r}"
        if is_excluded(url, self.excluded_extensions):
            return f"excluded extension .{url_extension(url)}"
        return None

    def accepts(self, url: str) -> bool:
        return self.rejection_reason(url) is None

    def follows(self, url: str, origin_host: Optional[str]) -> bool:
        """Whether a traversal rooted at ``origin_host`` should visit ``url``."""
        try:
            hostname = urlparse(url).hostname
        except ValueError:
            return False
        if not hostname or hostname.lower() != (origin_host or "").lower():
            return False
        return self.accepts(url)
