"""
Voucher classifier: apply codes through the site's internal endpoint and map the
raw response onto a fixed status taxonomy.

The apply call runs as a `fetch` inside the live page so the authenticated
session's cookies, origin and referer travel with it. Codes are checked one
at a time (single shared page) with a fixed delay after each.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from playwright.async_api import Page

from automation.cart import ensure_cart_has_item
from automation.crawl.constants import (
    APPLY_VOUCHER_PATH,
    CART_TOKEN_SETTLE_SECONDS,
    NAV_TIMEOUT_MS,
    VOUCHER_CHECK_DELAY_SECONDS,
)
from automation.crawl.navigation import navigate_tolerant
from automation.crawl.readiness import settle
from automation.session import BrowserSession, SessionLaunchError
from shared.logging import bind_request_context, get_logger

logger = get_logger(__name__)


class VoucherStatus(str, Enum):
    APPLICABLE = "APPLICABLE"
    NOT_APPLICABLE = "NOT_APPLICABLE"
    INVALID = "INVALID"
    REDEEMED = "REDEEMED"
    ERROR = "ERROR"
    ERROR_CART_EMPTY = "ERROR_CART_EMPTY"
    UNKNOWN = "UNKNOWN"


# Checked in order; first keyword group found in the lowercased message wins.
ERROR_MESSAGE_RULES: tuple[tuple[tuple[str, ...], VoucherStatus], ...] = (
    (("invalid", "does not exist"), VoucherStatus.INVALID),
    (("redeemed", "limit", "used"), VoucherStatus.REDEEMED),
    (("applicable", "criteria", "eligible"), VoucherStatus.NOT_APPLICABLE),
)
# Unrecognized error messages count as a failure to apply. This is a policy
# choice, not something the endpoint documents.
UNRECOGNIZED_ERROR_STATUS = VoucherStatus.INVALID

_APPLY_VOUCHER_JS = """
async (options) => {
  try {
    const response = await fetch(options.path, {
      method: 'POST',
      headers: {
        'Content-Type': 'application/json',
        'X-Requested-With': 'XMLHttpRequest'
      },
      body: JSON.stringify({
        voucherId: options.code,
        device: { client_type: 'web' }
      })
    });
    const data = await response.json();
    return { ok: response.ok, status: response.status, data };
  } catch (err) {
    return { error: String((err && err.message) || err) };
  }
}
"""


@dataclass(frozen=True)
class VoucherResult:
    """Classification of one code; message holds the upstream error text when present."""

    code: str
    status: VoucherStatus
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "status": self.status.value, "message": self.message}


def _discount_value(data: dict) -> float:
    amount = data.get("voucherAmount")
    if not isinstance(amount, dict):
        return 0.0
    try:
        return float(amount.get("value") or 0)
    except (TypeError, ValueError):
        return 0.0


def _first_error_message(data: dict) -> Optional[str]:
    error_payload = data.get("errorMessage")
    if not isinstance(error_payload, dict):
        return None
    for error in error_payload.get("errors") or []:
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return None


def classify_error_message(message: str) -> VoucherStatus:
    """Map an upstream error message to a status by keyword (case-insensitive)."""
    lowered = message.lower()
    for keywords, status in ERROR_MESSAGE_RULES:
        if any(keyword in lowered for keyword in keywords):
            return status
    return UNRECOGNIZED_ERROR_STATUS


def classify_voucher_response(api_result: dict) -> tuple[VoucherStatus, Optional[str]]:
    """
    Classify the raw apply-voucher result into (status, upstream message).

    api_result is {"error": str} for transport/parse failures, else
    {"ok": bool, "status": int, "data": <json>}. Pure function for unit tests.
    """
    if not isinstance(api_result, dict):
        return VoucherStatus.UNKNOWN, None
    if api_result.get("error"):
        return VoucherStatus.ERROR, str(api_result["error"])

    data = api_result.get("data")
    if not data or not isinstance(data, dict):
        return VoucherStatus.UNKNOWN, None

    if api_result.get("ok") and not data.get("errorMessage"):
        if _discount_value(data) > 0:
            return VoucherStatus.APPLICABLE, None
        return VoucherStatus.NOT_APPLICABLE, None

    message = _first_error_message(data)
    if message is not None:
        return classify_error_message(message), message

    if str(data.get("code")) == "0" or data.get("msg") == "success":
        return VoucherStatus.APPLICABLE, None

    return VoucherStatus.UNKNOWN, None


async def apply_voucher(page: Page, code: str) -> dict:
    """Run the apply-voucher call inside the page; returns the raw result dict."""
    return await page.evaluate(_APPLY_VOUCHER_JS, {"path": APPLY_VOUCHER_PATH, "code": code})


async def check_code(page: Page, code: str, *, detailed: bool = True) -> VoucherResult:
    """Apply and classify one code. Never raises; evaluation failures become ERROR."""
    try:
        api_result = await apply_voucher(page, code)
    except Exception as e:
        logger.error("voucher.apply_failed", code=code, error=str(e), error_type=type(e).__name__)
        return VoucherResult(code=code, status=VoucherStatus.ERROR, message=str(e))

    if detailed:
        logger.info("voucher.api_response", code=code, response=api_result)
    status, message = classify_voucher_response(api_result)
    if status is UNRECOGNIZED_ERROR_STATUS and message is not None:
        logger.debug("voucher.error_message", code=code, message=message)
    logger.info("voucher.checked", code=code, status=status.value)
    return VoucherResult(code=code, status=status, message=message)


async def check_coupons(
    session: BrowserSession,
    codes: Iterable[str],
    *,
    close_browser: bool = True,
    detailed: bool = True,
) -> list[VoucherResult]:
    """
    Classify every code through the shared session; exactly one result per code, in order.

    When the cart cannot be made non-empty, every code is ERROR_CART_EMPTY and no
    apply call is made. Pass close_browser=False to keep the session for the next
    batch. SessionLaunchError propagates.
    """
    codes = list(codes)
    results: list[VoucherResult] = []

    async with session.acquire():
        bind_request_context(operation="check_coupons", code_count=len(codes))
        try:
            page = await session.ensure_session()

            if "cart" not in page.url:
                await navigate_tolerant(page, session.cart_url, timeout_ms=NAV_TIMEOUT_MS)
                await settle(CART_TOKEN_SETTLE_SECONDS)

            has_item = await ensure_cart_has_item(
                page,
                session.selectors,
                session.config,
                cart_url=session.cart_url,
                fallback_url=session.fallback_collection_url,
            )
            if not has_item:
                logger.error("voucher.cart_empty_abort", code_count=len(codes))
                return [VoucherResult(code=c, status=VoucherStatus.ERROR_CART_EMPTY) for c in codes]

            for code in codes:
                results.append(await check_code(page, code, detailed=detailed))
                await settle(VOUCHER_CHECK_DELAY_SECONDS)
        except SessionLaunchError:
            raise
        except Exception as e:
            logger.error(
                "voucher.batch_interrupted",
                checked=len(results),
                remaining=len(codes) - len(results),
                error=str(e),
                error_type=type(e).__name__,
            )
            results.extend(
                VoucherResult(code=c, status=VoucherStatus.ERROR, message=str(e))
                for c in codes[len(results):]
            )
        finally:
            if close_browser:
                await session.teardown_session()

    return results

