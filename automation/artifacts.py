"""
Debug screenshots: point-in-time captures when an add-to-cart or scan needs inspection.

Optional instrumentation gated by AppConfig.debug_screenshots. Capture or write
failures are logged and never fail the calling operation.
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from playwright.async_api import Page

from shared.config import AppConfig
from shared.logging import get_logger

logger = get_logger(__name__)

_LABEL_PATTERN = re.compile(r"[^a-z0-9_]+")


def build_screenshot_path(artifacts_dir: str, label: str, now: Optional[datetime] = None) -> Path:
    """
    Build the screenshot path: {artifacts_dir}/debug/{label}_{UTC timestamp}.png.

    Label is lowercased and reduced to [a-z0-9_]. Returns a Path (nothing is created).
    """
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%S%fZ")
    safe_label = _LABEL_PATTERN.sub("_", (label or "debug").lower()).strip("_") or "debug"
    return Path(artifacts_dir) / "debug" / f"{safe_label}_{stamp}.png"


def write_screenshot(path: Path, image_bytes: bytes) -> tuple[int, str]:
    """
    Write screenshot bytes to disk.

    Returns (size_bytes, checksum). May raise OSError on write failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(image_bytes)
    return len(image_bytes), hashlib.md5(image_bytes).hexdigest()


async def save_debug_screenshot(page: Page, config: AppConfig, label: str) -> Optional[str]:
    """Capture the page and write it under artifacts_dir; returns the path or None."""
    if not config.debug_screenshots:
        return None
    path = build_screenshot_path(config.artifacts_dir, label)
    try:
        image_bytes = await page.screenshot()
        size, checksum = write_screenshot(path, image_bytes)
    except Exception as e:
        logger.warning(
            "artifact_write_failed",
            artifact_type="screenshot",
            label=label,
            error=str(e),
            error_type=type(e).__name__,
        )
        return None
    logger.info(
        "artifact_saved",
        artifact_type="screenshot",
        label=label,
        size_bytes=size,
        checksum=checksum,
        path=str(path),
    )
    return str(path)
