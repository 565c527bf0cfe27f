"""
Data-driven selector profile for the storefront.

Each field is an ordered list of extraction strategies tried in sequence; the
defaults come from automation.crawl.constants and any field can be replaced by
a JSON file (SITE_SELECTORS_FILE) so markup changes need no code change.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

from automation.crawl.constants import (
    ACCESS_DENIED_PHRASES,
    ADD_TO_BAG_LABEL,
    ADD_TO_CART_BUTTON_SELECTORS,
    ADD_TO_CART_LABELS,
    CART_BADGE_SELECTORS,
    ENABLED_SIZE_SELECTORS,
    EXCLUDED_LINK_SUBSTRINGS,
    LOGIN_PROMPT_PHRASES,
    LOGIN_PROMPT_SELECTORS,
    PRODUCT_CARD_LINK_SELECTORS,
    PRODUCT_PATH_MARKER,
    PRODUCT_PRICE_SELECTORS,
    PRODUCT_TITLE_SELECTORS,
    SOLD_OUT_PHRASES,
)
from shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SiteSelectors:
    """Ordered selector and phrase lists used by discovery, stock and cart helpers."""

    product_path_marker: str = PRODUCT_PATH_MARKER
    excluded_link_substrings: tuple[str, ...] = EXCLUDED_LINK_SUBSTRINGS
    product_card_links: tuple[str, ...] = tuple(PRODUCT_CARD_LINK_SELECTORS)
    enabled_sizes: tuple[str, ...] = tuple(ENABLED_SIZE_SELECTORS)
    product_title: tuple[str, ...] = tuple(PRODUCT_TITLE_SELECTORS)
    product_price: tuple[str, ...] = tuple(PRODUCT_PRICE_SELECTORS)
    add_to_bag_label: str = ADD_TO_BAG_LABEL
    add_to_cart_labels: tuple[str, ...] = ADD_TO_CART_LABELS
    add_to_cart_buttons: tuple[str, ...] = tuple(ADD_TO_CART_BUTTON_SELECTORS)
    cart_badges: tuple[str, ...] = tuple(CART_BADGE_SELECTORS)
    login_prompts: tuple[str, ...] = tuple(LOGIN_PROMPT_SELECTORS)
    sold_out_phrases: tuple[str, ...] = SOLD_OUT_PHRASES
    access_denied_phrases: tuple[str, ...] = ACCESS_DENIED_PHRASES
    login_prompt_phrases: tuple[str, ...] = LOGIN_PROMPT_PHRASES
    extra: dict = field(default_factory=dict, compare=False)


def selectors_from_mapping(data: dict, base: Optional[SiteSelectors] = None) -> SiteSelectors:
    """
    Overlay a mapping of field name -> value onto `base` (defaults when None).

    List values become tuples; unknown keys are kept in `extra` and logged.
    Pure function for unit tests.
    """
    base = base or SiteSelectors()
    known = {f.name for f in fields(SiteSelectors)} - {"extra"}
    updates: dict = {}
    unknown: dict = {}
    for key, value in (data or {}).items():
        if key not in known:
            unknown[key] = value
            continue
        if isinstance(value, (list, tuple)):
            updates[key] = tuple(str(v) for v in value)
        elif isinstance(value, str):
            updates[key] = value
        else:
            raise ValueError(f"Selector field {key!r} must be a string or list of strings")
    if unknown:
        logger.warning("selectors.unknown_fields", fields=sorted(unknown))
    return replace(base, **updates, extra={**base.extra, **unknown})


def load_site_selectors(path: Optional[str]) -> SiteSelectors:
    """Load selector overrides from a JSON file; defaults when path is None."""
    if not path:
        return SiteSelectors()
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Selector file {path} must contain a JSON object")
    selectors = selectors_from_mapping(raw)
    logger.info("selectors.loaded", path=path, overridden=sorted(k for k in raw))
    return selectors
