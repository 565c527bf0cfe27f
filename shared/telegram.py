"""
Telegram notification helper for protection reports.

The automation core hands back plain result records; this module is the
front-end side that turns them into message text and sends it.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional

import requests

from shared.logging import get_logger

if TYPE_CHECKING:
    from automation.vouchers import VoucherResult

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 4000

STATUS_ICONS = {
    "APPLICABLE": "✅",
    "INVALID": "❌",
    "REDEEMED": "🚫",
}


def send_telegram_message(
    bot_token: str,
    chat_id: str,
    message: str,
    parse_mode: Optional[str] = None,
) -> bool:
    """
    Send a message to Telegram chat.

    Returns True if successful, False otherwise.
    """
    if not bot_token or not chat_id:
        return False

    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"

    payload = {
        "chat_id": chat_id,
        "text": message[:MAX_MESSAGE_LENGTH],
    }

    if parse_mode:
        payload["parse_mode"] = parse_mode

    try:
        response = requests.post(url, json=payload, timeout=10)
        response.raise_for_status()
        return True
    except Exception as e:
        logger.warning("telegram.send_failed", chat_id=chat_id, error=str(e))
        return False


def format_voucher_report(
    results: Iterable["VoucherResult"],
    title: str = "Protection Active",
    now: Optional[datetime] = None,
) -> str:
    """Render voucher results as a plain-text report, one line per code."""
    stamp = (now or datetime.now()).strftime("%H:%M:%S")
    lines = [f"🛡️ {title} 🛡️", f"Last Updated: {stamp}", ""]
    for result in results:
        status = str(result.status.value)
        icon = STATUS_ICONS.get(status, "⚠️")
        lines.append(f"{icon} {result.code}: {status}")
    return "\n".join(lines)
