from dotenv import load_dotenv
from enum import Enum
from typing import Optional, Set
import os

from pydantic import BaseModel, Field, field_validator

from urlsweep.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)
from urlsweep.policy import parse_extensions

load_dotenv()  # Loads variables from .env file


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default  # Keep default if conversion fails


def _env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


class Settings:
    """
    Manages application settings loaded from environment variables.

    These only provide defaults; command-line flags always win.
    """
    SCOPE = os.getenv("URLSWEEP_SCOPE")
    CONCURRENCY = _env_int("URLSWEEP_CONCURRENCY", DEFAULT_CONCURRENCY)
    TIMEOUT = _env_float("URLSWEEP_TIMEOUT")
    REQUEST_TIMEOUT = _env_float("URLSWEEP_REQUEST_TIMEOUT", float(DEFAULT_REQUEST_TIMEOUT_SECONDS))
    EXCLUDE = os.getenv("URLSWEEP_EXCLUDE", "")
    PROXY = os.getenv("URLSWEEP_PROXY")
    PROXY_AUTH = os.getenv("URLSWEEP_PROXY_AUTH")
    MAX_PAGES = _env_int("URLSWEEP_MAX_PAGES")
    USER_AGENT = os.getenv("URLSWEEP_USER_AGENT", DEFAULT_USER_AGENT)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()


class FetchStrategy(str, Enum):
    """Primary fetcher for a run, chosen once from the recursive flag."""
    RENDERED = "rendered"  # JavaScript-rendered pages via Playwright
    STATIC = "static"  # Raw markup, no script execution

    @classmethod
    def from_recursive(cls, recursive: bool) -> "FetchStrategy":
        return cls.RENDERED if recursive else cls.STATIC


class FetchConfig(BaseModel):
    """
    Options handed to every fetch backend.

    TLS verification lives here instead of in process-wide state so that
    each backend applies it to its own transport.
    """

    verify_ssl: bool = Field(
        default=True,
        description="Validate TLS certificates"
    )

    request_timeout: float = Field(
        default=float(DEFAULT_REQUEST_TIMEOUT_SECONDS),
        description="Per-request timeout in seconds",
        gt=0,
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User agent sent by every backend"
    )

    concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        description="Maximum parallel requests for traversal backends",
        ge=1,
        le=100,
    )

    max_pages: Optional[int] = Field(
        default=None,
        description="Maximum pages visited by one traversal (None = unbounded)",
        ge=1,
    )

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    follow_redirects: bool = Field(
        default=True,
        description="Follow HTTP redirects"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = True

    @property
    def timeout_ms(self) -> int:
        """Request timeout in milliseconds (Playwright units)."""
        return int(self.request_timeout * 1000)


class CrawlConfig(BaseModel):
    """
    Configuration for one urlsweep run.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    scope: Optional[str] = Field(
        default=None,
        description="Hostname pattern, e.g. '*.example.com'"
    )

    concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        description="Maximum parallel requests for eligible backends",
        ge=1,
        le=100,
    )

    recursive: bool = Field(
        default=False,
        description="Use the rendered fetcher with link auto-enqueue instead of the static fetcher"
    )

    timeout: Optional[float] = Field(
        default=None,
        description="Global deadline in seconds; the run stops when it elapses",
        gt=0,
    )

    ignore_ssl: bool = Field(
        default=False,
        description="Disable certificate validation for every backend"
    )

    force_redirect: bool = Field(
        default=False,
        description="Accepted for compatibility; every backend follows redirects already"
    )

    excluded_extensions: Set[str] = Field(
        default_factory=set,
        description="Lowercase extensions (no dot) never recorded or followed"
    )

    proxy: Optional[str] = Field(
        default=None,
        description="Proxy URI or path to a file of proxy URIs"
    )

    proxy_auth: Optional[str] = Field(
        default=None,
        description="username:password applied to every proxy"
    )

    output: Optional[str] = Field(
        default=None,
        description="Destination file for the results"
    )

    json_output: bool = Field(
        default=False,
        description="Write structured records instead of plain URLs"
    )

    iterative: bool = Field(
        default=False,
        description="Re-crawl newly discovered URLs up to the depth ceiling"
    )

    max_pages: Optional[int] = Field(
        default=None,
        description="Maximum pages visited by one traversal (None = unbounded)",
        ge=1,
    )

    request_timeout: float = Field(
        default=float(DEFAULT_REQUEST_TIMEOUT_SECONDS),
        description="Per-request timeout in seconds",
        gt=0,
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User agent sent by every backend"
    )

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True

    @field_validator("excluded_extensions", mode="before")
    @classmethod
    def _split_extensions(cls, value):
        return parse_extensions(value)

    @field_validator("scope", "proxy", "proxy_auth", "output", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def strategy(self) -> FetchStrategy:
        return FetchStrategy.from_recursive(self.recursive)

    def fetch_config(self) -> FetchConfig:
        """Derive the options every backend receives."""
        return FetchConfig(
            verify_ssl=not self.ignore_ssl,
            request_timeout=self.request_timeout,
            user_agent=self.user_agent,
            concurrency=self.concurrency,
            max_pages=self.max_pages,
            headless=self.headless,
        )
