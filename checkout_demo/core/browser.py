"""Playwright browser harness hosting the checkout page."""

import asyncio
import threading
from contextlib import asynccontextmanager
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from .config import get_settings
from .logging import get_logger

logger = get_logger(__name__)

# Minimal page shell: the widget mount point is the only element the
# checkout core writes to.
CHECKOUT_SHELL_HTML = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>Checkout</title></head>
  <body>
    <main>
      <section class="dropin-card">
        <div data-checkout-widget></div>
      </section>
    </main>
  </body>
</html>
"""


class BrowserManager:
    """Manages Playwright browser lifecycle."""

    def __init__(self):
        """Initialize browser manager."""
        self.settings = get_settings()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self._start_lock = asyncio.Lock()

    async def start(self) -> None:
        """Start Playwright and launch browser."""
        async with self._start_lock:
            if self.browser:
                logger.warning("Browser already started")
                return

            logger.info("Starting Playwright browser", headless=self.settings.headless)

            self.playwright = await async_playwright().start()

            self.browser = await self.playwright.chromium.launch(
                headless=self.settings.headless,
                timeout=self.settings.browser_launch_timeout,
                args=[
                    '--no-sandbox',
                    '--disable-dev-shm-usage',
                ]
            )

            self.context = await self.browser.new_context(
                viewport={'width': 1280, 'height': 720},
                java_script_enabled=True,
                accept_downloads=False,
            )
            self.context.set_default_timeout(self.settings.browser_timeout)

            logger.info("Browser started successfully")

    async def stop(self) -> None:
        """Stop browser and cleanup resources."""
        if not self.browser:
            logger.warning("Browser not running")
            return

        logger.info("Stopping browser")

        if self.context:
            await self.context.close()
            self.context = None

        if self.browser:
            await self.browser.close()
            self.browser = None

        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

        logger.info("Browser stopped")

    async def new_page(self) -> Page:
        """
        Create a new page in the browser context.

        Returns:
            New page instance

        Raises:
            RuntimeError: If browser not started
        """
        if not self.context:
            raise RuntimeError("Browser not started. Call start() first.")

        page = await self.context.new_page()
        logger.debug("Created new page")
        return page

    async def open_checkout_page(self) -> Page:
        """
        Create a page loaded with the checkout shell.

        Returns:
            Page containing an empty widget mount point
        """
        page = await self.new_page()
        await page.set_content(CHECKOUT_SHELL_HTML)
        logger.debug("Checkout shell loaded", selector=self.settings.widget_container_selector)
        return page


# Global instance with thread safety
_browser_manager: Optional[BrowserManager] = None
_browser_lock = threading.Lock()


def get_browser_manager() -> BrowserManager:
    """
    Get or create the global BrowserManager instance (thread-safe).

    Uses double-checked locking so that only one manager is ever created.
    """
    global _browser_manager

    if _browser_manager is None:
        with _browser_lock:
            if _browser_manager is None:
                _browser_manager = BrowserManager()

    return _browser_manager


@asynccontextmanager
async def managed_browser():
    """
    Context manager for browser lifecycle.

    Usage:
        async with managed_browser() as browser:
            page = await browser.open_checkout_page()
            # ... use page
    """
    browser = get_browser_manager()
    try:
        await browser.start()
        yield browser
    finally:
        await browser.stop()
