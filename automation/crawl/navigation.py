"""
Timeout-tolerant navigation and page-text helpers.

Navigation timeouts on this storefront are mostly spurious (slow analytics and
trackers) while the primary document has already loaded, so a timeout is logged
and the caller continues with whatever the page now shows. Every other failure
propagates to the caller's per-step handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Optional

from playwright.async_api import Page, Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from automation.crawl.constants import NAV_TIMEOUT_MS
from shared.logging import get_logger

logger = get_logger(__name__)

WaitUntil = Literal["commit", "domcontentloaded", "load", "networkidle"]


@dataclass
class NavigateResult:
    """Result of navigate_tolerant: the URL the page ended on and the response, if any."""

    url: str
    response: Optional[Response]
    timed_out: bool = False

    @property
    def status(self) -> Optional[int]:
        return self.response.status if self.response is not None else None


def _classify_failure(exc: BaseException) -> str:
    """
    Classify a navigation failure for logging.

    Returns one of: navigation_timeout, net_err, other.
    """
    if isinstance(exc, PlaywrightTimeoutError):
        return "navigation_timeout"
    msg = (getattr(exc, "message", None) or str(exc)).lower()
    if "net::err_" in msg:
        return "net_err"
    return "other"


async def navigate_tolerant(
    page: Page,
    url: str,
    *,
    wait_until: WaitUntil = "domcontentloaded",
    timeout_ms: int = NAV_TIMEOUT_MS,
    tolerate_timeout: bool = True,
) -> NavigateResult:
    """
    Navigate with a bounded timeout; on timeout log, re-read the current URL and continue.

    With tolerate_timeout=False the Playwright TimeoutError is re-raised after logging.
    Non-timeout errors are logged and re-raised.
    """
    logger.info("navigation.attempt", url=url, wait_until=wait_until, timeout_ms=timeout_ms)
    try:
        response = await page.goto(url, wait_until=wait_until, timeout=timeout_ms)
    except Exception as e:
        reason = _classify_failure(e)
        if reason == "navigation_timeout" and tolerate_timeout:
            current_url = page.url
            logger.warning(
                "navigation.timeout",
                url=url,
                current_url=current_url,
                timeout_ms=timeout_ms,
            )
            return NavigateResult(url=current_url, response=None, timed_out=True)
        logger.warning(
            "navigation.failed",
            url=url,
            failure_classification=reason,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    current_url = page.url
    logger.info(
        "navigation.success",
        url=url,
        current_url=current_url,
        status=response.status if response is not None else None,
    )
    return NavigateResult(url=current_url, response=response)


async def read_body_text(page: Page) -> str:
    """Return the lowercased visible text of the page body."""
    text = await page.evaluate("() => (document.body && document.body.innerText) || ''")
    return (text or "").lower()


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """Return True if lowercased text contains any of the phrases. Pure function for tests."""
    lowered = (text or "").lower()
    return any(phrase.lower() in lowered for phrase in phrases)


async def has_any_selector(page: Page, selectors: Iterable[str]) -> bool:
    """Return True if at least one element matches any of the selectors."""
    for selector in selectors:
        try:
            if await page.locator(selector).count() > 0:
                return True
        except Exception:
            continue
    return False
