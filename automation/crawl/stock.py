"""
Stock / availability classification for a single product page.

The page is read once into a signals dict; `classify_stock` then applies the
first-match-wins precedence (sold-out text, enabled sizes, add-to-bag button).
`check_stock` never raises: any navigation or evaluation failure becomes an
unavailable result with reason "Page Load Error".
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from playwright.async_api import Page

from automation.crawl.constants import (
    PRICE_PLACEHOLDER,
    STOCK_NAV_TIMEOUT_MS,
    STOCK_SETTLE_SECONDS,
    TITLE_PLACEHOLDER,
)
from automation.crawl.navigation import contains_any, navigate_tolerant
from automation.crawl.readiness import settle
from automation.crawl.selectors import SiteSelectors
from shared.logging import get_logger

logger = get_logger(__name__)

REASON_SOLD_OUT = "Sold Out"
REASON_NO_SIZES = "No sizes available"
REASON_ADD_DISABLED = "Add to Bag disabled"
REASON_PAGE_LOAD_ERROR = "Page Load Error"

# Injected into the page; read-only.
_STOCK_SIGNALS_JS = """
(options) => {
  const textOf = (el) => ((el && el.innerText) || '').trim();
  const first = (selectors) => {
    for (const sel of selectors) {
      const el = document.querySelector(sel);
      if (el && textOf(el)) return textOf(el);
    }
    return null;
  };
  const sizes = [];
  for (const sel of options.sizeSelectors) {
    document.querySelectorAll(sel).forEach(el => sizes.push(textOf(el)));
  }
  const label = options.addLabel.toUpperCase();
  const labelled = Array.from(document.querySelectorAll('button'))
    .filter(b => textOf(b).toUpperCase().includes(label));
  const button = labelled.find(b => !b.disabled) || labelled[0];
  return {
    bodyText: ((document.body && document.body.innerText) || '').toLowerCase(),
    sizeLabels: sizes,
    addButtonFound: !!button,
    addButtonEnabled: !!button && !button.disabled,
    title: first(options.titleSelectors),
    price: first(options.priceSelectors),
  };
}
"""


@dataclass(frozen=True)
class StockInfo:
    """Availability of one product link; title/price/sizes only meaningful when available."""

    url: str
    available: bool
    reason: Optional[str] = None
    title: Optional[str] = None
    price: Optional[str] = None
    sizes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["sizes"] = list(self.sizes)
        return data


def classify_stock(
    url: str,
    signals: dict,
    selectors: Optional[SiteSelectors] = None,
) -> StockInfo:
    """
    Apply availability precedence to page signals (pure function for tests).

    signals keys: bodyText, sizeLabels, addButtonEnabled, title, price.
    """
    selectors = selectors or SiteSelectors()
    if contains_any(signals.get("bodyText") or "", selectors.sold_out_phrases):
        return StockInfo(url=url, available=False, reason=REASON_SOLD_OUT)

    size_labels = list(signals.get("sizeLabels") or [])
    if not size_labels:
        return StockInfo(url=url, available=False, reason=REASON_NO_SIZES)

    if not signals.get("addButtonEnabled"):
        return StockInfo(url=url, available=False, reason=REASON_ADD_DISABLED)

    return StockInfo(
        url=url,
        available=True,
        title=(signals.get("title") or "").strip() or TITLE_PLACEHOLDER,
        price=(signals.get("price") or "").strip() or PRICE_PLACEHOLDER,
        sizes=tuple(str(s).strip() for s in size_labels),
    )


async def read_stock_signals(page: Page, selectors: SiteSelectors) -> dict:
    """Evaluate the stock signals script in the current page."""
    return await page.evaluate(
        _STOCK_SIGNALS_JS,
        {
            "sizeSelectors": list(selectors.enabled_sizes),
            "addLabel": selectors.add_to_bag_label,
            "titleSelectors": list(selectors.product_title),
            "priceSelectors": list(selectors.product_price),
        },
    )


async def check_stock(
    page: Page,
    url: str,
    selectors: Optional[SiteSelectors] = None,
) -> StockInfo:
    """Navigate to a product link and classify it. Never raises."""
    selectors = selectors or SiteSelectors()
    try:
        await navigate_tolerant(
            page,
            url,
            timeout_ms=STOCK_NAV_TIMEOUT_MS,
            tolerate_timeout=False,
        )
        await settle(STOCK_SETTLE_SECONDS)
        signals = await read_stock_signals(page, selectors)
    except Exception as e:
        logger.error(
            "stock_check_failed",
            url=url,
            error=str(e),
            error_type=type(e).__name__,
        )
        return StockInfo(url=url, available=False, reason=REASON_PAGE_LOAD_ERROR)

    info = classify_stock(url, signals, selectors)
    logger.info(
        "stock_checked",
        url=url,
        available=info.available,
        reason=info.reason,
        size_count=len(info.sizes),
    )
    return info
