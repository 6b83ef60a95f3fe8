"""Headless browser renderer for JavaScript-rendered product pages."""

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from shopzap.config import settings
from shopzap.errors import RenderError
from shopzap.ingest.proxy_manager import ProxyPool

logger = logging.getLogger(__name__)


# Realistic user agents for rotation
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
]

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
]

_INNER_TEXT_JS = """
(selector) => {
    const element = document.querySelector(selector);
    return element ? element.innerText : null;
}
"""

_COLLECT_JS = """
(items, [fields, limit]) => items.slice(0, limit).map((item) => {
    const row = {};
    for (const [name, [selector, attribute]] of Object.entries(fields)) {
        const element = selector ? item.querySelector(selector) : item;
        if (!element) {
            row[name] = null;
            continue;
        }
        let value = attribute === "href" ? element.href : attribute ? element.getAttribute(attribute) : element.innerText;
        row[name] = value ? value.trim() : null;
    }
    return row;
})
"""


class PlaywrightPage:
    """Handle on one rendered page, owned by a single extraction."""

    def __init__(self, page: Page, context: BrowserContext, url: str, selector_timeout_ms: int = 0):
        self.url = url
        self._page = page
        self._context = context
        self._selector_timeout_ms = selector_timeout_ms
        self.closed = False

    async def text_of(self, locator: str) -> Optional[str]:
        """Inner text of the first element matching the locator, None if not found."""
        try:
            element = await self._page.query_selector(locator)
            if element is None and self._selector_timeout_ms:
                element = await self._page.wait_for_selector(locator, timeout=self._selector_timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug(f"Locator timed out on {self.url}: {locator[:50]}")
            return None
        if element is None:
            return None
        text = await element.inner_text()
        return text.strip() or None

    async def evaluate(self, locator: str) -> Optional[str]:
        """Read an element's inner text straight from the DOM, without waiting."""
        text = await self._page.evaluate(_INNER_TEXT_JS, locator)
        if text is None:
            return None
        return str(text).strip() or None

    async def collect(
        self,
        item_locator: str,
        fields: dict[str, list[Optional[str]]],
        limit: int,
    ) -> list[dict[str, Optional[str]]]:
        """
        Read a set of fields from each repeated listing element.

        Args:
            item_locator: Locator matching each listing
            fields: Field name -> [locator within the item, optional attribute]
            limit: Maximum number of listings to read

        Returns:
            One dict per listing, missing fields set to None
        """
        try:
            await self._page.wait_for_selector(item_locator, timeout=self._selector_timeout_ms or 1)
        except PlaywrightTimeoutError:
            return []
        return await self._page.eval_on_selector_all(item_locator, _COLLECT_JS, [fields, limit])

    async def goto(self, url: str, timeout_ms: int) -> None:
        try:
            await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise RenderError(url, "Navigation timeout") from e
        except PlaywrightError as e:
            raise RenderError(url, str(e)) from e
        self.url = url

    async def _dispose(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._context.close()
        except PlaywrightError as e:
            logger.error(f"Error closing browser context for {self.url}: {e}")


class PlaywrightRenderer:
    """
    Opens product pages in headless Chromium.

    Each page gets its own browser context (and proxy, when configured).
    The number of pages open at once is bounded; open() takes a slot and
    close() gives it back, session() pairs the two.
    """

    def __init__(
        self,
        proxy_pool: Optional[ProxyPool] = None,
        max_sessions: int | None = None,
        headless: bool | None = None,
        navigation_timeout_seconds: int | None = None,
        selector_timeout_ms: int | None = None,
    ):
        self.proxy_pool = proxy_pool or ProxyPool(settings.proxy_endpoints)
        self.headless = settings.headless if headless is None else headless
        self.navigation_timeout_ms = (navigation_timeout_seconds or settings.navigation_timeout_seconds) * 1000
        self.selector_timeout_ms = (
            settings.selector_timeout_ms if selector_timeout_ms is None else selector_timeout_ms
        )
        self._slots = asyncio.Semaphore(max_sessions or settings.max_concurrent_pages)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._init_lock = asyncio.Lock()

    async def _ensure_browser(self) -> Browser:
        async with self._init_lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            if self._browser is None or not self._browser.is_connected():
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=LAUNCH_ARGS,
                )
                logger.info("Launched headless Chromium")
            return self._browser

    async def _new_context(self) -> BrowserContext:
        browser = await self._ensure_browser()
        options = {"user_agent": random.choice(USER_AGENTS)}
        proxy = self.proxy_pool.pick()
        if proxy:
            options["proxy"] = proxy.playwright_config
        return await browser.new_context(**options)

    async def open(self, url: str) -> PlaywrightPage:
        """
        Render a URL and return a page handle.

        Raises:
            RenderError: Browser launch, proxy or navigation failure
        """
        await self._slots.acquire()
        context: Optional[BrowserContext] = None
        try:
            context = await self._new_context()
            handle = PlaywrightPage(await context.new_page(), context, url, self.selector_timeout_ms)
            logger.debug(f"Navigating to {url}")
            await handle.goto(url, self.navigation_timeout_ms)
            return handle
        except PlaywrightError as e:
            await self._discard(context)
            raise RenderError(url, str(e)) from e
        except BaseException:
            await self._discard(context)
            raise

    async def close(self, page: PlaywrightPage) -> None:
        """Close a page handle and free its slot. Safe to call twice."""
        if page.closed:
            return
        await page._dispose()
        self._slots.release()

    @asynccontextmanager
    async def session(self, url: str) -> AsyncIterator[PlaywrightPage]:
        page = await self.open(url)
        try:
            yield page
        finally:
            await self.close(page)

    async def _discard(self, context: Optional[BrowserContext]) -> None:
        try:
            if context is not None:
                await context.close()
        except PlaywrightError as e:
            logger.error(f"Error closing browser context: {e}")
        finally:
            self._slots.release()

    async def shutdown(self) -> None:
        """Close browser and cleanup."""
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
