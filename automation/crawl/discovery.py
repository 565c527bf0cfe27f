"""
Product discovery: collect product links from listing, search and wishlist pages.

Two passes in DOM order, unioned with insertion-order dedupe:
1. Pattern pass: every anchor whose href carries the product marker ("/p-"),
   excluding cart / wishlist / comment utility links.
2. Card pass: anchors matched by the structural product-card selectors.
Relative and protocol-relative hrefs are made absolute against the page URL
before dedupe. No ranking.
"""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

from playwright.async_api import Page

from automation.crawl.selectors import SiteSelectors
from shared.logging import get_logger

logger = get_logger(__name__)

# Injected into the page; read-only, returns raw hrefs per pass in DOM order.
_COLLECT_HREFS_JS = """
(options) => {
  const read = (nodes) => Array.from(nodes)
    .map(a => a.getAttribute('href'))
    .filter(h => !!h);
  const pattern = read(document.querySelectorAll(`a[href*="${options.marker}"]`));
  const cards = [];
  for (const sel of options.cardSelectors) {
    try {
      cards.push(...read(document.querySelectorAll(sel)));
    } catch (e) {
      // invalid selector in an override file; skip it
    }
  }
  return { pattern, cards, pageUrl: window.location.href };
}
"""


def qualify_href(href: str, base_url: str) -> Optional[str]:
    """
    Make href absolute against base_url; None for empty, fragment, mailto/tel or non-http(s).

    "//host/x" resolves to base scheme (https on this site), "/x" to the page origin.
    Pure function for unit tests.
    """
    href = (href or "").strip()
    if not href or href.startswith("#") or href.startswith(("mailto:", "tel:", "javascript:")):
        return None
    try:
        full = urljoin(base_url, href)
    except ValueError:
        return None
    parsed = urlparse(full)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return full


def filter_product_links(
    pattern_hrefs: Iterable[str],
    card_hrefs: Iterable[str],
    base_url: str,
    selectors: Optional[SiteSelectors] = None,
) -> list[str]:
    """
    Union the two discovery passes into a deduplicated, insertion-ordered URL list.

    Pattern-pass links must carry the product marker and none of the excluded
    substrings; card-pass links only need the product marker. Pure function.
    """
    selectors = selectors or SiteSelectors()
    marker = selectors.product_path_marker
    seen: set[str] = set()
    result: list[str] = []

    def _add(url: Optional[str]) -> None:
        if url and url not in seen:
            seen.add(url)
            result.append(url)

    for raw in pattern_hrefs:
        url = qualify_href(raw, base_url)
        if not url or marker not in url:
            continue
        if any(excluded in url for excluded in selectors.excluded_link_substrings):
            continue
        _add(url)

    for raw in card_hrefs:
        url = qualify_href(raw, base_url)
        if url and marker in url:
            _add(url)

    return result


async def extract_product_links(
    page: Page,
    selectors: Optional[SiteSelectors] = None,
) -> list[str]:
    """
    Extract product links from the current page. Empty list on no matches or on error.
    """
    selectors = selectors or SiteSelectors()
    try:
        raw = await page.evaluate(
            _COLLECT_HREFS_JS,
            {
                "marker": selectors.product_path_marker,
                "cardSelectors": list(selectors.product_card_links),
            },
        )
    except Exception as e:
        logger.warning(
            "product_discovery_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return []

    base_url = raw.get("pageUrl") or page.url
    pattern_hrefs = raw.get("pattern") or []
    card_hrefs = raw.get("cards") or []
    links = filter_product_links(pattern_hrefs, card_hrefs, base_url, selectors)
    logger.info(
        "product_discovery_complete",
        pattern_pass_count=len(pattern_hrefs),
        card_pass_count=len(card_hrefs),
        final_count=len(links),
    )
    return links
