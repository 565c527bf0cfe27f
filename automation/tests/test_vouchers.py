"""
Unit tests for voucher classification and batch checking.

Covers the response taxonomy on sample payloads, one result per code in input
order, the empty-cart abort (no apply calls) and mid-batch interruption.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from automation.session import BrowserSession, SessionLaunchError
from automation.vouchers import (
    VoucherResult,
    VoucherStatus,
    check_code,
    check_coupons,
    classify_error_message,
    classify_voucher_response,
)


def _error_payload(message: str) -> dict:
    return {
        "ok": False,
        "status": 400,
        "data": {"errorMessage": {"errors": [{"message": message}]}},
    }


# --- classify_voucher_response ---


def test_redeemed_message_classifies_redeemed():
    status, message = classify_voucher_response(
        _error_payload("This voucher has already been redeemed")
    )
    assert status is VoucherStatus.REDEEMED
    assert message == "This voucher has already been redeemed"


def test_invalid_message_classifies_invalid():
    status, _ = classify_voucher_response(_error_payload("Voucher code does not exist"))
    assert status is VoucherStatus.INVALID


def test_usage_limit_classifies_redeemed():
    status, _ = classify_voucher_response(_error_payload("Usage limit reached"))
    assert status is VoucherStatus.REDEEMED


def test_criteria_message_classifies_not_applicable():
    status, _ = classify_voucher_response(
        _error_payload("Cart does not meet the criteria for this voucher")
    )
    assert status is VoucherStatus.NOT_APPLICABLE


def test_unrecognized_error_message_classifies_invalid():
    status, message = classify_voucher_response(_error_payload("Something odd happened"))
    assert status is VoucherStatus.INVALID
    assert message == "Something odd happened"


def test_keyword_precedence_invalid_before_redeemed():
    assert classify_error_message("Invalid: already used") is VoucherStatus.INVALID


def test_positive_discount_classifies_applicable():
    status, message = classify_voucher_response(
        {"ok": True, "status": 200, "data": {"voucherAmount": {"value": 500}}}
    )
    assert status is VoucherStatus.APPLICABLE
    assert message is None


def test_zero_discount_classifies_not_applicable():
    status, _ = classify_voucher_response(
        {"ok": True, "status": 200, "data": {"voucherAmount": {"value": 0}}}
    )
    assert status is VoucherStatus.NOT_APPLICABLE


def test_missing_or_unparseable_amount_is_not_applicable():
    for data in ({"cart": {}}, {"voucherAmount": {"value": "n/a"}}, {"voucherAmount": None}):
        status, _ = classify_voucher_response({"ok": True, "status": 200, "data": data})
        assert status is VoucherStatus.NOT_APPLICABLE, data


def test_string_amount_is_parsed():
    status, _ = classify_voucher_response(
        {"ok": True, "status": 200, "data": {"voucherAmount": {"value": "250.00"}}}
    )
    assert status is VoucherStatus.APPLICABLE


def test_transport_error_classifies_error():
    status, message = classify_voucher_response({"error": "Failed to fetch"})
    assert status is VoucherStatus.ERROR
    assert message == "Failed to fetch"


def test_success_code_without_ok_classifies_applicable():
    for data in ({"code": "0"}, {"code": 0}, {"msg": "success"}):
        status, _ = classify_voucher_response({"ok": False, "status": 200, "data": data})
        assert status is VoucherStatus.APPLICABLE, data


def test_empty_data_classifies_unknown():
    assert classify_voucher_response({"ok": False, "status": 500, "data": {}})[0] is (
        VoucherStatus.UNKNOWN
    )
    assert classify_voucher_response({"ok": False, "status": 500, "data": None})[0] is (
        VoucherStatus.UNKNOWN
    )
    assert classify_voucher_response({"ok": False, "data": {"code": "7"}})[0] is (
        VoucherStatus.UNKNOWN
    )


def test_voucher_result_to_dict():
    result = VoucherResult(code="SVI123", status=VoucherStatus.REDEEMED, message="used")
    assert result.to_dict() == {"code": "SVI123", "status": "REDEEMED", "message": "used"}


# --- check_code ---


@pytest.mark.asyncio
async def test_check_code_evaluate_failure_is_error():
    page = AsyncMock()
    page.evaluate = AsyncMock(side_effect=RuntimeError("Target closed"))

    result = await check_code(page, "SVI1")

    assert result.status is VoucherStatus.ERROR
    assert result.code == "SVI1"


@pytest.mark.asyncio
async def test_check_code_posts_code_to_apply_endpoint():
    page = AsyncMock()
    page.evaluate = AsyncMock(
        return_value={"ok": True, "status": 200, "data": {"voucherAmount": {"value": 1}}}
    )

    result = await check_code(page, "SVDJ1")

    assert result.status is VoucherStatus.APPLICABLE
    _, arg = page.evaluate.call_args[0]
    assert arg == {"path": "/api/cart/apply-voucher", "code": "SVDJ1"}


# --- check_coupons ---


@pytest.mark.asyncio
async def test_check_coupons_returns_one_result_per_code_in_order(app_config, fake_playwright):
    session = BrowserSession(app_config, playwright_factory=fake_playwright)
    responses = {
        "A": _error_payload("Voucher code is invalid"),
        "B": {"ok": True, "status": 200, "data": {"voucherAmount": {"value": 100}}},
        "C": _error_payload("already redeemed"),
    }

    async def fake_apply(page, code):
        return responses[code]

    with patch("asyncio.sleep", new_callable=AsyncMock), patch(
        "automation.vouchers.ensure_cart_has_item", new_callable=AsyncMock, return_value=True
    ), patch("automation.vouchers.apply_voucher", side_effect=fake_apply):
        results = await check_coupons(session, ["A", "B", "C"])

    assert [r.code for r in results] == ["A", "B", "C"]
    assert [r.status for r in results] == [
        VoucherStatus.INVALID,
        VoucherStatus.APPLICABLE,
        VoucherStatus.REDEEMED,
    ]
    assert not session.is_open


@pytest.mark.asyncio
async def test_check_coupons_empty_cart_marks_all_without_apply_calls(app_config, fake_playwright):
    session = BrowserSession(app_config, playwright_factory=fake_playwright)
    apply = AsyncMock()

    with patch("asyncio.sleep", new_callable=AsyncMock), patch(
        "automation.vouchers.ensure_cart_has_item", new_callable=AsyncMock, return_value=False
    ), patch("automation.vouchers.apply_voucher", apply):
        results = await check_coupons(session, ["A", "B"])

    assert [r.code for r in results] == ["A", "B"]
    assert all(r.status is VoucherStatus.ERROR_CART_EMPTY for r in results)
    apply.assert_not_called()


@pytest.mark.asyncio
async def test_check_coupons_keeps_session_when_requested(app_config, fake_playwright):
    session = BrowserSession(app_config, playwright_factory=fake_playwright)

    with patch("asyncio.sleep", new_callable=AsyncMock), patch(
        "automation.vouchers.ensure_cart_has_item", new_callable=AsyncMock, return_value=True
    ), patch(
        "automation.vouchers.apply_voucher",
        new_callable=AsyncMock,
        return_value={"ok": True, "status": 200, "data": {"voucherAmount": {"value": 0}}},
    ):
        await check_coupons(session, ["A"], close_browser=False)
        await check_coupons(session, ["B"], close_browser=False)

    assert session.is_open
    assert fake_playwright.launches == 1


@pytest.mark.asyncio
async def test_check_coupons_navigates_to_cart_when_elsewhere(app_config, fake_playwright):
    fake_playwright.page.url = "https://www.sheinindia.in/"
    session = BrowserSession(app_config, playwright_factory=fake_playwright)
    navigate = AsyncMock()

    with patch("asyncio.sleep", new_callable=AsyncMock), patch(
        "automation.vouchers.navigate_tolerant", navigate
    ), patch(
        "automation.vouchers.ensure_cart_has_item", new_callable=AsyncMock, return_value=False
    ):
        await check_coupons(session, ["A"])

    assert navigate.await_args[0][1] == "https://www.sheinindia.in/cart"


@pytest.mark.asyncio
async def test_check_coupons_interrupted_batch_fills_remaining_with_error(
    app_config, fake_playwright
):
    session = BrowserSession(app_config, playwright_factory=fake_playwright)
    settle_calls = 0

    async def flaky_settle(seconds):
        nonlocal settle_calls
        settle_calls += 1
        if settle_calls == 2:
            raise RuntimeError("page crashed")

    with patch("automation.vouchers.settle", side_effect=flaky_settle), patch(
        "asyncio.sleep", new_callable=AsyncMock
    ), patch(
        "automation.vouchers.ensure_cart_has_item", new_callable=AsyncMock, return_value=True
    ), patch(
        "automation.vouchers.apply_voucher",
        new_callable=AsyncMock,
        return_value=_error_payload("invalid"),
    ):
        results = await check_coupons(session, ["A", "B", "C"])

    assert [r.code for r in results] == ["A", "B", "C"]
    assert [r.status for r in results] == [
        VoucherStatus.INVALID,
        VoucherStatus.INVALID,
        VoucherStatus.ERROR,
    ]
    assert not session.is_open


@pytest.mark.asyncio
async def test_check_coupons_launch_failure_propagates(app_config, fake_playwright):
    fake_playwright.driver.chromium.launch_persistent_context = AsyncMock(
        side_effect=RuntimeError("no browser")
    )
    session = BrowserSession(app_config, playwright_factory=fake_playwright)

    with pytest.raises(SessionLaunchError):
        await check_coupons(session, ["A"])
