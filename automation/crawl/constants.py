"""
Crawl constants: storefront paths, timeouts, fixed delays, text phrases, selectors.

Selector lists here are the defaults for `SiteSelectors`; a JSON override file can
replace any of them without code changes (see automation.crawl.selectors).
"""

from __future__ import annotations

# Storefront paths (joined onto AppConfig.site_base_url)
CART_PATH = "/cart"
WISHLIST_PATH = "/wishlist"
FALLBACK_COLLECTION_PATH = "/c/sverse-5939-37961"
APPLY_VOUCHER_PATH = "/api/cart/apply-voucher"

# Navigation timeouts (ms)
NAV_TIMEOUT_MS = 60_000
LONG_NAV_TIMEOUT_MS = 90_000
STOCK_NAV_TIMEOUT_MS = 30_000
BUTTON_WAIT_TIMEOUT_MS = 5_000

# Fixed settle delays (seconds)
SESSION_SETTLE_SECONDS = 1
CART_TOKEN_SETTLE_SECONDS = 4
CART_RECOUNT_SETTLE_SECONDS = 3
STOCK_SETTLE_SECONDS = 2
ADD_TO_CART_LANDING_SECONDS = 5
ADD_TO_CART_REDIRECT_SECONDS = 5
ADD_TO_CART_FALLBACK_LINK_SECONDS = 4
SIZE_SELECT_SETTLE_SECONDS = 1
ADD_TO_CART_VERIFY_SECONDS = 5
FALLBACK_COLLECTION_SETTLE_SECONDS = 6
FALLBACK_SCROLL_SETTLE_SECONDS = 2
SCAN_CONTENT_SETTLE_SECONDS = 8
VOUCHER_CHECK_DELAY_SECONDS = 1

# Interactive login window (seconds)
LOGIN_HOLD_SECONDS = 300

# Scroll pulses used to trigger lazy-loaded grids
CATALOG_SCROLL_PULSES = 5
CATALOG_SCROLL_STEP_PX = 1000
CATALOG_SCROLL_WAIT_SECONDS = 0.8
WISHLIST_SCROLL_PULSES = 1
WISHLIST_SCROLL_STEP_PX = 500

# Limits
CATALOG_SCAN_LIMIT = 50
FALLBACK_CANDIDATE_LIMIT = 5

# Inert click position used to dismiss overlays
OVERLAY_DISMISS_POINT = (10, 10)

# Redirect query parameter carried by app deep links
DEEP_LINK_PARAM = "deep_link_value"
DEEP_LINK_HOST_MARKER = "onelink.me"

# Chromium launch flags for the persistent profile
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-features=IsolateOrigins,site-per-process",
    "--disable-blink-features=AutomationControlled",
]

# Product URL markers: "/p-" on listing links, "/p/" on some direct product pages
PRODUCT_PATH_MARKER = "/p-"
DIRECT_PRODUCT_PATH_MARKERS = ("/p-", "/p/")

# Substrings excluding utility links from the pattern pass of discovery
EXCLUDED_LINK_SUBSTRINGS = ("cart", "wishlist", "comment")

# Structural selectors wrapping product cards (category, search, wishlist variants)
PRODUCT_CARD_LINK_SELECTORS = [
    ".S-product-item__img-container a",
    ".product-card__img-container a",
    ".item-img a",
    "a.product-item-img",
    "div[class*='product-item'] a",
    ".S-product-item__info a",
    ".product-item__name a",
    ".wish-list__item a",
    ".wish-item-info a",
    "a[data-type='product']",
]

# Product page
ENABLED_SIZE_SELECTORS = [
    ".product-intro__size-choose .product-intro__size-radio:not(.product-intro__size-radio_disabled)",
]
PRODUCT_TITLE_SELECTORS = [".product-intro__head-name"]
PRODUCT_PRICE_SELECTORS = [".product-intro__head-mainprice .common-price"]
ADD_TO_BAG_LABEL = "ADD TO BAG"
ADD_TO_CART_LABELS = ("ADD TO BAG", "ADD TO CART")
ADD_TO_CART_BUTTON_SELECTORS = ["button", ".product-intro__add-btn", ".j-add-to-bag"]

# Cart badge
CART_BADGE_SELECTORS = [".j-bag-count", ".header-cart-count", ".iconfont-gouwudai .num"]

# Wishlist login prompt
LOGIN_PROMPT_SELECTORS = [".login-box", "#login-box"]

# Placeholders for missing product metadata
TITLE_PLACEHOLDER = "Product"
PRICE_PLACEHOLDER = "Unknown"

# Page text phrases (matched lowercase)
SOLD_OUT_PHRASES = ("sold out", "restock", "out of stock")
ACCESS_DENIED_PHRASES = ("access denied", "please enable cookies")
LOGIN_PROMPT_PHRASES = ("sign in", "log in")
