"""
Fetch backends.

Four independent, redundant discovery strategies run for every target:
the primary fetcher (rendered or static), the DOM descent, the lightweight
HTTP pass and the historical archive query.
"""

from .archive import ArchiveFetcher, parse_cdx_lines
from .base import Emit, FailureHook, FetchBackend, extract_links, traverse
from .browser import BrowserSession
from .rendered import DomDescentFetcher, RenderedFetcher
from .static import LightweightFetcher, StaticFetcher

__all__ = [
    "ArchiveFetcher",
    "BrowserSession",
    "DomDescentFetcher",
    "Emit",
    "FailureHook",
    "FetchBackend",
    "LightweightFetcher",
    "RenderedFetcher",
    "StaticFetcher",
    "extract_links",
    "parse_cdx_lines",
    "traverse",
]
