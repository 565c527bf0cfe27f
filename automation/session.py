"""
Browser session orchestrator: the single shared browser context and page.

One `BrowserSession` owns the Playwright driver, a persistent Chromium context
bound to the profile directory (so login cookies survive restarts) and exactly
one active page. Top-level operations serialize through `acquire()`; helpers
further down a call chain receive the `Page` and never acquire.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright
from playwright_stealth import Stealth

from automation.crawl.constants import (
    CART_PATH,
    FALLBACK_COLLECTION_PATH,
    LAUNCH_ARGS,
    LOGIN_HOLD_SECONDS,
    SESSION_SETTLE_SECONDS,
    WISHLIST_PATH,
)
from automation.crawl.readiness import settle
from automation.crawl.selectors import SiteSelectors, load_site_selectors
from shared.config import AppConfig
from shared.logging import clear_request_context, get_logger

logger = get_logger(__name__)


class SessionLaunchError(Exception):
    """Raised when the browser cannot be launched or no page can be opened."""


class ScanState:
    """
    Cooperative cancellation flag for a scan.

    Set when a scan starts, cleared when it ends or when stop() is called;
    scan loops poll `active` before each iteration.
    """

    def __init__(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        self._active = True

    def stop(self) -> None:
        self._active = False


class BrowserSession:
    """The single live automation context: persistent browser profile plus one page."""

    def __init__(
        self,
        config: AppConfig,
        selectors: Optional[SiteSelectors] = None,
        playwright_factory: Callable = async_playwright,
    ) -> None:
        self.config = config
        self.selectors = selectors or load_site_selectors(config.selectors_file)
        self.scan_state = ScanState()
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._headless: Optional[bool] = None
        self._lock = asyncio.Lock()

    # --- storefront URLs ---

    def site_url(self, path: str) -> str:
        return f"{self.config.site_base_url}{path}"

    @property
    def cart_url(self) -> str:
        return self.site_url(CART_PATH)

    @property
    def wishlist_url(self) -> str:
        return self.site_url(WISHLIST_PATH)

    @property
    def fallback_collection_url(self) -> str:
        return self.site_url(FALLBACK_COLLECTION_PATH)

    # --- state ---

    @property
    def is_open(self) -> bool:
        return self._context is not None and self._page is not None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise SessionLaunchError("No active page; call ensure_session() first")
        return self._page

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator["BrowserSession"]:
        """Hold exclusive use of the session for one top-level operation."""
        if self._lock.locked():
            logger.info("session.waiting_for_guard")
        async with self._lock:
            try:
                yield self
            finally:
                clear_request_context()

    # --- lifecycle ---

    async def ensure_session(self, headless: Optional[bool] = None) -> Page:
        """
        Return the active page, launching the persistent browser on first use.

        Headless mode is the explicit override when given, else AppConfig.headless.
        Raises SessionLaunchError when the browser cannot be launched.
        """
        if self.is_open:
            return self._page  # type: ignore[return-value]

        is_headless = headless if headless is not None else self.config.headless
        profile_dir = Path(self.config.profile_dir).expanduser()
        logger.info("browser.launching", headless=is_headless, profile_dir=str(profile_dir))

        try:
            profile_dir.mkdir(parents=True, exist_ok=True)
            self._playwright = await self._playwright_factory().start()
            self._context = await self._playwright.chromium.launch_persistent_context(
                str(profile_dir),
                headless=is_headless,
                args=LAUNCH_ARGS,
                ignore_https_errors=True,
            )
        except Exception as e:
            logger.error(
                "browser.launch_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._stop_driver()
            raise SessionLaunchError(
                "Could not launch browser. Make sure Playwright browsers are installed."
            ) from e

        # The stealth layer misbehaves on the default blank page the runtime
        # opens, so close it and work on a page created after stealth is applied.
        for default_page in list(self._context.pages):
            try:
                await default_page.close()
            except Exception as e:
                logger.warning("browser.initial_page_close_failed", error=str(e))

        try:
            if self.config.stealth:
                await Stealth().apply_stealth_async(self._context)
            self._page = await self._context.new_page()
        except Exception as e:
            logger.error("browser.page_open_failed", error=str(e), error_type=type(e).__name__)
            await self.teardown_session()
            raise SessionLaunchError("Browser launched but no page could be opened.") from e

        self._headless = is_headless
        logger.info("browser.launched", headless=is_headless)
        await settle(SESSION_SETTLE_SECONDS)
        return self._page

    async def teardown_session(self) -> None:
        """Close the browser and clear the session. No-op without one; never raises."""
        if self._context is None:
            await self._stop_driver()
            return
        context = self._context
        self._context = None
        self._page = None
        self._headless = None
        try:
            await context.close()
            logger.info("browser.closed")
        except Exception as e:
            logger.warning("browser.close_failed", error=str(e), error_type=type(e).__name__)
        finally:
            await self._stop_driver()

    async def _stop_driver(self) -> None:
        if self._playwright is None:
            return
        driver = self._playwright
        self._playwright = None
        try:
            await driver.stop()
        except Exception as e:
            logger.warning("playwright.stop_failed", error=str(e))

    async def interactive_login(self, hold_seconds: int = LOGIN_HOLD_SECONDS) -> None:
        """
        Open a visible browser for a human to sign in, hold it, then tear down.

        Cookies land in the persistent profile and are reused by later sessions.
        """
        async with self.acquire():
            if self.is_open and self._headless:
                await self.teardown_session()
            await self.ensure_session(headless=False)
            logger.info("login.window_open", hold_seconds=hold_seconds)
            try:
                await settle(hold_seconds)
            finally:
                await self.teardown_session()
            logger.info("login.window_closed")

    def stop_scan(self) -> None:
        """Ask the running scan to stop at its next iteration boundary."""
        if self.scan_state.active:
            logger.info("scan.stop_requested")
        self.scan_state.stop()
