"""
Scan controllers: walk a catalog or the signed-in wishlist and report in-stock items.

Each scan holds the session guard for its whole run, marks its ScanState active
and polls it before every product check so `BrowserSession.stop_scan()` halts
the loop at the next boundary. The state is cleared on every exit path.
Available items are returned and also emitted through `on_result` as they are found.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from playwright.async_api import Page

from automation.artifacts import save_debug_screenshot
from automation.crawl.constants import (
    CATALOG_SCAN_LIMIT,
    CATALOG_SCROLL_PULSES,
    CATALOG_SCROLL_STEP_PX,
    CATALOG_SCROLL_WAIT_SECONDS,
    LONG_NAV_TIMEOUT_MS,
    SCAN_CONTENT_SETTLE_SECONDS,
    WISHLIST_SCROLL_PULSES,
    WISHLIST_SCROLL_STEP_PX,
)
from automation.crawl.discovery import extract_product_links
from automation.crawl.navigation import (
    contains_any,
    has_any_selector,
    navigate_tolerant,
    read_body_text,
)
from automation.crawl.readiness import scroll_pulses, settle
from automation.crawl.stock import StockInfo, check_stock
from automation.session import BrowserSession, ScanState
from shared.logging import bind_request_context, get_logger

logger = get_logger(__name__)

ResultCallback = Callable[[StockInfo], Union[None, Awaitable[None]]]


class ScanError(Exception):
    """A scan could not run against the requested page."""


class AccessDeniedError(ScanError):
    """The storefront served a security challenge; the stored login must be refreshed."""


class LoginRequiredError(ScanError):
    """The wishlist requires a signed-in profile."""


async def _emit(on_result: Optional[ResultCallback], info: StockInfo) -> None:
    if on_result is None:
        return
    outcome: Any = on_result(info)
    if inspect.isawaitable(outcome):
        await outcome


async def _check_links(
    page: Page,
    session: BrowserSession,
    links: list[str],
    state: ScanState,
    on_result: Optional[ResultCallback],
) -> list[StockInfo]:
    found: list[StockInfo] = []
    for index, link in enumerate(links):
        if not state.active:
            logger.info("scan.stopped", checked=index, total=len(links))
            break
        info = await check_stock(page, link, session.selectors)
        if info.available:
            found.append(info)
            await _emit(on_result, info)
    return found


async def scan_catalog(
    session: BrowserSession,
    url: Optional[str] = None,
    on_result: Optional[ResultCallback] = None,
    *,
    limit: int = CATALOG_SCAN_LIMIT,
    state: Optional[ScanState] = None,
) -> list[StockInfo]:
    """
    Scan a listing page (default: the fallback collection) for in-stock products.

    Raises ScanError when the listing answers 404. Only the first `limit`
    discovered links are checked.
    """
    state = state or session.scan_state
    target = url or session.fallback_collection_url

    async with session.acquire():
        bind_request_context(operation="scan_catalog", url=target)
        state.start()
        try:
            page = await session.ensure_session()
            nav = await navigate_tolerant(page, target, timeout_ms=LONG_NAV_TIMEOUT_MS)
            if nav.status == 404:
                raise ScanError(f"The page returned a 404 error. Please check the URL: {target}")

            await settle(SCAN_CONTENT_SETTLE_SECONDS)
            await scroll_pulses(
                page,
                CATALOG_SCROLL_PULSES,
                CATALOG_SCROLL_STEP_PX,
                CATALOG_SCROLL_WAIT_SECONDS,
            )
            await save_debug_screenshot(page, session.config, "catalog_debug")

            links = (await extract_product_links(page, session.selectors))[:limit]
            logger.info("scan.links_found", count=len(links), limit=limit)
            found = await _check_links(page, session, links, state, on_result)
            logger.info("scan.complete", checked_links=len(links), available=len(found))
            return found
        except Exception as e:
            logger.error("scan.failed", url=target, error=str(e), error_type=type(e).__name__)
            raise
        finally:
            state.stop()


async def _wishlist_blocker(page: Page, session: BrowserSession) -> Optional[ScanError]:
    body_text = await read_body_text(page)
    selectors = session.selectors
    if contains_any(body_text, selectors.access_denied_phrases):
        return AccessDeniedError(
            "Access denied or security challenge triggered; re-authenticate with login."
        )
    if contains_any(body_text, selectors.login_prompt_phrases) or await has_any_selector(
        page, selectors.login_prompts
    ):
        return LoginRequiredError("You must log in first to scan the wishlist.")
    return None


async def scan_wishlist(
    session: BrowserSession,
    on_result: Optional[ResultCallback] = None,
    *,
    state: Optional[ScanState] = None,
) -> list[StockInfo]:
    """
    Scan the signed-in wishlist for in-stock items.

    Raises AccessDeniedError on a security challenge and LoginRequiredError when
    the profile is signed out. An empty first discovery is retried once after a reload.
    """
    state = state or session.scan_state
    target = session.wishlist_url

    async with session.acquire():
        bind_request_context(operation="scan_wishlist", url=target)
        state.start()
        try:
            page = await session.ensure_session()
            await navigate_tolerant(page, target, timeout_ms=LONG_NAV_TIMEOUT_MS)
            await settle(SCAN_CONTENT_SETTLE_SECONDS)
            await scroll_pulses(page, WISHLIST_SCROLL_PULSES, WISHLIST_SCROLL_STEP_PX)
            await save_debug_screenshot(page, session.config, "wishlist_debug")

            blocker = await _wishlist_blocker(page, session)
            if blocker is not None:
                raise blocker

            links = await extract_product_links(page, session.selectors)
            if not links:
                logger.info("scan.wishlist_empty_reloading")
                try:
                    await page.reload(wait_until="domcontentloaded")
                except Exception as e:
                    logger.warning("scan.wishlist_reload_failed", error=str(e))
                await settle(SCAN_CONTENT_SETTLE_SECONDS)
                await scroll_pulses(page, WISHLIST_SCROLL_PULSES, WISHLIST_SCROLL_STEP_PX)
                links = await extract_product_links(page, session.selectors)

            logger.info("scan.links_found", count=len(links))
            found = await _check_links(page, session, links, state, on_result)
            logger.info("scan.complete", checked_links=len(links), available=len(found))
            return found
        except Exception as e:
            logger.error("scan.failed", url=target, error=str(e), error_type=type(e).__name__)
            raise
        finally:
            state.stop()
