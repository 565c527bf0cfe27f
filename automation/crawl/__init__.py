"""
Page-level Playwright helpers for the storefront.

This package implements tolerant navigation, page settling, product discovery
and stock classification. Session-level operations (cart, vouchers, scans)
live one level up in `automation`.

Public API: re-exports the symbols used by the session-level modules and tests
so that `from automation.crawl import ...` stays valid.
"""

from __future__ import annotations

from automation.crawl.discovery import (
    extract_product_links,
    filter_product_links,
    qualify_href,
)
from automation.crawl.navigation import (
    NavigateResult,
    contains_any,
    has_any_selector,
    navigate_tolerant,
    read_body_text,
)
from automation.crawl.readiness import dismiss_overlay, scroll_pulses, settle
from automation.crawl.selectors import (
    SiteSelectors,
    load_site_selectors,
    selectors_from_mapping,
)
from automation.crawl.stock import (
    REASON_ADD_DISABLED,
    REASON_NO_SIZES,
    REASON_PAGE_LOAD_ERROR,
    REASON_SOLD_OUT,
    StockInfo,
    check_stock,
    classify_stock,
)

__all__ = [
    # selectors
    "SiteSelectors",
    "load_site_selectors",
    "selectors_from_mapping",
    # navigation
    "NavigateResult",
    "navigate_tolerant",
    "read_body_text",
    "contains_any",
    "has_any_selector",
    # readiness
    "settle",
    "scroll_pulses",
    "dismiss_overlay",
    # discovery
    "qualify_href",
    "filter_product_links",
    "extract_product_links",
    # stock
    "StockInfo",
    "classify_stock",
    "check_stock",
    "REASON_SOLD_OUT",
    "REASON_NO_SIZES",
    "REASON_ADD_DISABLED",
    "REASON_PAGE_LOAD_ERROR",
]
