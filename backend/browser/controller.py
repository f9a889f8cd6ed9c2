"""
Browser Controller - Playwright lifecycle for the upload automator.
Owns the browser, its single context, and the pages opened in it.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import async_playwright, Browser, Page, BrowserContext, Playwright
from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)


class BrowserController:
    """
    Async Playwright controller.

    Features:
    - One persistent context, so cookies set once apply to every page
    - Page creation and lookup by URL
    - Cookie injection one cookie at a time, with a result per cookie
    """

    LAUNCH_ARGS = [
        '--disable-blink-features=AutomationControlled',
        '--no-sandbox',
        '--disable-setuid-sandbox',
    ]

    USER_AGENT = 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36'

    def __init__(
        self,
        headless: bool = False,
        viewport_width: int = 1280,
        viewport_height: int = 800,
        navigation_timeout_ms: int = 30000,
    ):
        self.headless = headless
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.navigation_timeout_ms = navigation_timeout_ms

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self._is_running = False

    async def start(self) -> None:
        """Launch Chromium and open the shared context."""
        logger.info("Starting browser...")

        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.headless,
            args=self.LAUNCH_ARGS,
        )

        self.context = await self.browser.new_context(
            viewport={
                'width': self.viewport_width,
                'height': self.viewport_height
            },
            user_agent=self.USER_AGENT,
        )
        self._is_running = True

        logger.info(f"Browser started (viewport: {self.viewport_width}x{self.viewport_height})")

    def on_page(self, handler: Callable[[Page], Any]) -> None:
        """Register a handler for every page opened in the context."""
        if self.context:
            self.context.on("page", handler)

    @property
    def pages(self) -> List[Page]:
        if not self.context:
            return []
        return [page for page in self.context.pages if not page.is_closed()]

    def find_page(self, predicate: Callable[[str], bool]) -> Optional[Page]:
        """First open page whose URL satisfies predicate."""
        for page in self.pages:
            if predicate(page.url):
                return page
        return None

    async def new_page(self, url: Optional[str] = None) -> Page:
        if not self.context:
            raise RuntimeError("Browser not started")

        page = await self.context.new_page()
        if url:
            await self.goto(page, url)
        return page

    async def goto(self, page: Page, url: str) -> Dict[str, Any]:
        """Navigate page to URL and wait for the load event."""
        try:
            logger.info(f"Navigating to: {url}")
            await page.goto(url, wait_until='load', timeout=self.navigation_timeout_ms)
            return {"success": True, "url": url}
        except PlaywrightError as e:
            logger.error(f"Navigation failed: {e}")
            return {"success": False, "error": str(e)}

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Add cookies to the context independently of each other.

        Returns one {name, success, error?} entry per cookie.
        """
        if not self.context:
            raise RuntimeError("Browser not started")

        results = []
        for cookie in cookies:
            try:
                await self.context.add_cookies([cookie])
                results.append({"name": cookie.get("name"), "success": True})
            except PlaywrightError as e:
                logger.error(f"Failed to set cookie {cookie.get('name')}: {e}")
                results.append({"name": cookie.get("name"), "success": False, "error": str(e)})
        return results

    async def close(self) -> None:
        """Close browser and cleanup."""
        self._is_running = False

        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

        self.context = None
        self.browser = None
        self.playwright = None

        logger.info("Browser closed")

    @property
    def is_running(self) -> bool:
        return self._is_running and self.context is not None
