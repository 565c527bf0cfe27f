"""Unit tests for protection report formatting and the Telegram sender."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock, patch

import requests

from automation.vouchers import VoucherResult, VoucherStatus
from shared.telegram import format_voucher_report, send_telegram_message


def test_report_lists_each_code_with_icon():
    report = format_voucher_report(
        [
            VoucherResult(code="SVI1", status=VoucherStatus.APPLICABLE),
            VoucherResult(code="SVI2", status=VoucherStatus.INVALID),
            VoucherResult(code="SVI3", status=VoucherStatus.REDEEMED),
            VoucherResult(code="SVI4", status=VoucherStatus.ERROR_CART_EMPTY),
        ],
        now=datetime(2026, 1, 1, 9, 30, 5),
    )

    lines = report.splitlines()
    assert "Protection Active" in lines[0]
    assert lines[1] == "Last Updated: 09:30:05"
    assert "✅ SVI1: APPLICABLE" in lines
    assert "❌ SVI2: INVALID" in lines
    assert "🚫 SVI3: REDEEMED" in lines
    assert "⚠️ SVI4: ERROR_CART_EMPTY" in lines


def test_send_without_credentials_is_noop():
    with patch("shared.telegram.requests.post") as post:
        assert send_telegram_message("", "123", "hi") is False
    post.assert_not_called()


def test_send_posts_truncated_message():
    response = MagicMock()
    with patch("shared.telegram.requests.post", return_value=response) as post:
        assert send_telegram_message("token", "123", "x" * 5000, parse_mode="HTML") is True

    url = post.call_args[0][0]
    payload = post.call_args.kwargs["json"]
    assert url == "https://api.telegram.org/bottoken/sendMessage"
    assert len(payload["text"]) == 4000
    assert payload["parse_mode"] == "HTML"


def test_send_failure_returns_false():
    with patch(
        "shared.telegram.requests.post",
        side_effect=requests.ConnectionError("unreachable"),
    ):
        assert send_telegram_message("token", "123", "hi") is False
