"""
Playwright browser lifecycle for the rendered backends.

Each page visit gets its own isolated browser context so that a proxy can
be picked per fetch attempt and cookies never leak between visits:

    async with BrowserSession(config, proxies) as session:
        links = await session.collect_links(url, "a[href]", HREF_SCRIPT)
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

from urlsweep.config import FetchConfig
from urlsweep.infrastructure import ProxyPool

logger = logging.getLogger(__name__)

# Absolute href of every matched anchor
HREF_SCRIPT = "elements => elements.map(el => el.href).filter(Boolean)"

# Anchor hrefs, image sources, then raw href/src attributes of anything else
DOM_LINKS_SCRIPT = """
elements => elements.map(el => {
    if (el.tagName === 'A') {
        return el.href;
    } else if (el.tagName === 'IMG') {
        return el.src;
    }
    return el.getAttribute('href') || el.getAttribute('src');
}).filter(Boolean)
"""


class BrowserSession:
    """Headless Chromium shared by one backend's traversal."""

    def __init__(self, config: FetchConfig, proxies: ProxyPool, browser_type: str = "chromium"):
        """
        Initialize the browser session.

        Args:
            config: FetchConfig with TLS, timeout, user agent and headless settings
            proxies: Pool a proxy is picked from for every page
            browser_type: Playwright browser engine
        """
        self._config = config
        self._proxies = proxies
        self._browser_type = browser_type
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "BrowserSession":
        """Enter async context manager, launching browser."""
        logger.debug(f"Launching {self._browser_type} browser (headless={self._config.headless})")

        self._playwright = await async_playwright().start()
        browser_launcher = getattr(self._playwright, self._browser_type)
        try:
            self._browser = await browser_launcher.launch(headless=self._config.headless)
        except BaseException:
            await self._playwright.stop()
            self._playwright = None
            raise

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing browser."""
        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.debug("Browser closed")

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Open a page in a new, isolated context routed through a picked proxy."""
        if not self._browser:
            raise RuntimeError(
                "Browser is not running. Use BrowserSession as an async context manager: "
                "async with BrowserSession(config, proxies) as session:"
            )

        context = await self._browser.new_context(
            user_agent=self._config.user_agent,
            ignore_https_errors=not self._config.verify_ssl,
            proxy=self._proxies.pick_playwright(),
            java_script_enabled=True,
        )
        try:
            yield await context.new_page()
        finally:
            # Always close context to ensure isolation
            await context.close()

    async def collect_links(self, url: str, selector: str, script: str) -> Optional[List[str]]:
        """
        Load ``url``, wait for the network to go idle and evaluate ``script``
        over every element matching ``selector``.

        Returns:
            The script's results plus the loaded URL, or None if the page
            answered with an HTTP error status
        """
        async with self.page() as page:
            response = await page.goto(
                url,
                wait_until="networkidle",
                timeout=self._config.timeout_ms,
            )
            if response is not None and response.status >= 400:
                logger.debug(f"{url} returned {response.status}")
                return None

            links = await page.eval_on_selector_all(selector, script)
            return [page.url] + [link for link in links if isinstance(link, str)]
