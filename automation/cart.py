"""
Cart precondition engine: make sure the cart holds an item before cart-scoped checks.

The apply-voucher endpoint only returns meaningful eligibility signals for a
non-empty cart. When the badge count reads zero, a fallback flow opens a
known always-stocked collection, discovers products and adds the first
in-stock one it can.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
from urllib.parse import parse_qs, unquote, urlparse

from playwright.async_api import Page

from automation.artifacts import save_debug_screenshot
from automation.crawl.constants import (
    ADD_TO_CART_FALLBACK_LINK_SECONDS,
    ADD_TO_CART_LANDING_SECONDS,
    ADD_TO_CART_REDIRECT_SECONDS,
    ADD_TO_CART_VERIFY_SECONDS,
    BUTTON_WAIT_TIMEOUT_MS,
    CART_RECOUNT_SETTLE_SECONDS,
    DEEP_LINK_HOST_MARKER,
    DEEP_LINK_PARAM,
    DIRECT_PRODUCT_PATH_MARKERS,
    FALLBACK_CANDIDATE_LIMIT,
    FALLBACK_COLLECTION_SETTLE_SECONDS,
    FALLBACK_SCROLL_SETTLE_SECONDS,
    LONG_NAV_TIMEOUT_MS,
    NAV_TIMEOUT_MS,
    SIZE_SELECT_SETTLE_SECONDS,
    WISHLIST_SCROLL_STEP_PX,
)
from automation.crawl.discovery import extract_product_links
from automation.crawl.navigation import navigate_tolerant
from automation.crawl.readiness import dismiss_overlay, scroll_pulses, settle
from automation.crawl.selectors import SiteSelectors
from automation.crawl.stock import check_stock
from shared.config import AppConfig
from shared.logging import bind_request_context, get_logger

if TYPE_CHECKING:
    from automation.session import BrowserSession

logger = get_logger(__name__)

ERROR_ADD_BUTTON_NOT_FOUND = "Add button not found"
ERROR_VERIFICATION_FAILED = "Verification failed"

_CART_COUNT_JS = """
(selectors) => {
  for (const sel of selectors) {
    for (const el of document.querySelectorAll(sel)) {
      const num = parseInt((el.innerText || '').trim(), 10);
      if (!isNaN(num)) return num;
    }
  }
  return 0;
}
"""

_SELECT_FIRST_SIZE_JS = """
(selectors) => {
  for (const sel of selectors) {
    const sizes = document.querySelectorAll(sel);
    if (sizes.length > 0) {
      sizes[0].click();
      return true;
    }
  }
  return false;
}
"""

_CLICK_ADD_BUTTON_JS = """
(options) => {
  const buttons = Array.from(document.querySelectorAll(options.buttonSelectors.join(', ')));
  const labels = options.labels.map(l => l.toUpperCase());
  const button = buttons.find(b => {
    const text = (b.innerText || '').toUpperCase();
    return !b.disabled && labels.some(l => text.includes(l));
  });
  if (button) {
    button.scrollIntoView();
    button.click();
    return true;
  }
  return false;
}
"""


@dataclass
class AddToCartResult:
    """Outcome of one add-to-cart attempt."""

    success: bool
    count: int = 0
    error: Optional[str] = None
    screenshot_path: Optional[str] = None


def extract_deep_link(url: str) -> Optional[str]:
    """Return the decoded deep-link redirect target carried in the URL, if any. Pure."""
    try:
        values = parse_qs(urlparse(url).query).get(DEEP_LINK_PARAM)
    except ValueError:
        return None
    if not values or not values[0]:
        return None
    return unquote(values[0])


def looks_like_product_page(url: str) -> bool:
    """
    Return True when url is a direct product page (not an app deep link or landing page).

    Pure function for unit tests.
    """
    if DEEP_LINK_HOST_MARKER in url:
        return "/p/" in url
    return any(marker in url for marker in DIRECT_PRODUCT_PATH_MARKERS)


async def get_cart_item_count(page: Page, selectors: Optional[SiteSelectors] = None) -> int:
    """Read the cart badge: first numeric value across the badge selectors, default 0."""
    selectors = selectors or SiteSelectors()
    try:
        count = await page.evaluate(_CART_COUNT_JS, list(selectors.cart_badges))
    except Exception as e:
        logger.warning("cart_count_failed", error=str(e), error_type=type(e).__name__)
        return 0
    try:
        return int(count or 0)
    except (TypeError, ValueError):
        return 0


async def _fail(
    page: Page,
    config: AppConfig,
    error: str,
    label: str,
    count: int = 0,
) -> AddToCartResult:
    screenshot_path = await save_debug_screenshot(page, config, label)
    return AddToCartResult(success=False, count=count, error=error, screenshot_path=screenshot_path)


async def _navigate_best_effort(page: Page, url: str, event: str, **kwargs) -> None:
    """Navigate, logging any failure and continuing on whatever page the browser is on."""
    try:
        await navigate_tolerant(page, url, **kwargs)
    except Exception as e:
        logger.warning(
            event,
            url=url,
            current_url=page.url,
            error=str(e),
            error_type=type(e).__name__,
        )


async def add_to_cart(
    page: Page,
    url: str,
    selectors: SiteSelectors,
    config: AppConfig,
) -> AddToCartResult:
    """
    Add the product behind `url` to the cart and verify via the badge count.

    Follows one deep-link redirect, falls back to the first discovered product
    when the landing page is not a product page, selects the first enabled
    size, clicks an "add to bag"/"add to cart" button. Never raises.
    """
    logger.info("add_to_cart.start", url=url)
    try:
        await _navigate_best_effort(
            page,
            url,
            "add_to_cart.landing_nav_failed",
            wait_until="networkidle",
            timeout_ms=LONG_NAV_TIMEOUT_MS,
        )
        await settle(ADD_TO_CART_LANDING_SECONDS)
        current_url = page.url
        logger.info("add_to_cart.landed", url=url, current_url=current_url)

        deep_link = extract_deep_link(current_url)
        if deep_link:
            logger.info("add_to_cart.deep_link", target=deep_link)
            await _navigate_best_effort(
                page, deep_link, "add_to_cart.deep_link_nav_failed", timeout_ms=NAV_TIMEOUT_MS
            )
            await settle(ADD_TO_CART_REDIRECT_SECONDS)
            current_url = page.url

        if not looks_like_product_page(current_url):
            logger.warning("add_to_cart.not_product_page", current_url=current_url)
            links = await extract_product_links(page, selectors)
            if links:
                logger.info("add_to_cart.following_first_link", link=links[0], found=len(links))
                await _navigate_best_effort(
                    page, links[0], "add_to_cart.first_link_failed", timeout_ms=NAV_TIMEOUT_MS
                )
                await settle(ADD_TO_CART_FALLBACK_LINK_SECONDS)

        await dismiss_overlay(page)

        try:
            await page.evaluate(_SELECT_FIRST_SIZE_JS, list(selectors.enabled_sizes))
        except Exception as e:
            logger.debug("add_to_cart.size_select_failed", error=str(e))
        await settle(SIZE_SELECT_SETTLE_SECONDS)

        try:
            await page.wait_for_selector("button", timeout=BUTTON_WAIT_TIMEOUT_MS)
        except Exception:
            logger.debug("add_to_cart.no_buttons_yet")

        clicked = await page.evaluate(
            _CLICK_ADD_BUTTON_JS,
            {
                "buttonSelectors": list(selectors.add_to_cart_buttons),
                "labels": list(selectors.add_to_cart_labels),
            },
        )
        if not clicked:
            logger.error("add_to_cart.button_not_found", url=page.url)
            return await _fail(page, config, ERROR_ADD_BUTTON_NOT_FOUND, "add_fail")

        logger.info("add_to_cart.clicked")
        await settle(ADD_TO_CART_VERIFY_SECONDS)
        count = await get_cart_item_count(page, selectors)
        if count > 0:
            logger.info("add_to_cart.verified", count=count)
            return AddToCartResult(success=True, count=count)
        logger.warning("add_to_cart.verification_failed", count=count)
        return await _fail(page, config, ERROR_VERIFICATION_FAILED, "add_unverified", count)
    except Exception as e:
        logger.error(
            "add_to_cart.failed",
            url=url,
            error=str(e),
            error_type=type(e).__name__,
        )
        return await _fail(page, config, str(e), "add_error")


async def add_fallback_item(
    page: Page,
    selectors: SiteSelectors,
    config: AppConfig,
    fallback_url: str,
) -> bool:
    """Add the first in-stock product from the fallback collection; True on success."""
    logger.info("cart.fallback_start", url=fallback_url)
    try:
        await _navigate_best_effort(
            page, fallback_url, "cart.fallback_nav_failed", timeout_ms=NAV_TIMEOUT_MS
        )
        await settle(FALLBACK_COLLECTION_SETTLE_SECONDS)
        await scroll_pulses(page, 1, WISHLIST_SCROLL_STEP_PX)
        await settle(FALLBACK_SCROLL_SETTLE_SECONDS)

        links = await extract_product_links(page, selectors)
        logger.info("cart.fallback_candidates", count=len(links))
        if not links:
            await save_debug_screenshot(page, config, "no_links")
            return False

        for link in links[:FALLBACK_CANDIDATE_LIMIT]:
            stock = await check_stock(page, link, selectors)
            if not stock.available:
                continue
            result = await add_to_cart(page, link, selectors, config)
            if result.success:
                return True
    except Exception as e:
        logger.error("cart.fallback_failed", error=str(e), error_type=type(e).__name__)
    return False


async def ensure_cart_has_item(
    page: Page,
    selectors: SiteSelectors,
    config: AppConfig,
    *,
    cart_url: str,
    fallback_url: str,
) -> bool:
    """Return True when the cart ends non-empty, adding a fallback item if it was empty."""
    try:
        count = await get_cart_item_count(page, selectors)
        if count == 0:
            logger.info("cart.empty")
            if not await add_fallback_item(page, selectors, config, fallback_url):
                return False
            await _navigate_best_effort(
                page, cart_url, "cart.recount_nav_failed", timeout_ms=NAV_TIMEOUT_MS
            )
            await settle(CART_RECOUNT_SETTLE_SECONDS)
            count = await get_cart_item_count(page, selectors)
        logger.info("cart.precondition_checked", count=count)
        return count > 0
    except Exception as e:
        logger.error("cart.precondition_failed", error=str(e), error_type=type(e).__name__)
        return False


async def add_item(session: "BrowserSession", url: str) -> AddToCartResult:
    """Manually add one product to the cart through the shared session."""
    async with session.acquire():
        bind_request_context(operation="add_item", url=url)
        page = await session.ensure_session()
        return await add_to_cart(page, url, session.selectors, session.config)
