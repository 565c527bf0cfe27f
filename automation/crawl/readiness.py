"""
Page settling: fixed waits, scroll pulses for lazy-loaded grids, inert overlay click.

Errors here never fail the calling operation.
"""

from __future__ import annotations

import asyncio

from playwright.async_api import Page

from automation.crawl.constants import OVERLAY_DISMISS_POINT
from shared.logging import get_logger

logger = get_logger(__name__)


async def settle(seconds: float) -> None:
    """Fixed wait for dynamic content, cookies or tokens to settle."""
    if seconds > 0:
        await asyncio.sleep(seconds)


async def scroll_pulses(
    page: Page,
    pulses: int,
    step_px: int,
    wait_seconds: float = 0,
) -> int:
    """
    Scroll down `pulses` times by `step_px`, waiting after each pulse.

    Returns the number of pulses completed; stops at the first evaluation error.
    """
    completed = 0
    for _ in range(pulses):
        try:
            await page.evaluate("(step) => window.scrollBy(0, step)", step_px)
        except Exception as e:
            logger.warning("scroll_pulse_failed", completed=completed, error=str(e))
            break
        completed += 1
        await settle(wait_seconds)
    return completed


async def dismiss_overlay(page: Page) -> None:
    """Click an inert point so mobile-view overlays close."""
    x, y = OVERLAY_DISMISS_POINT
    try:
        await page.mouse.click(x, y)
    except Exception as e:
        logger.debug("overlay_dismiss_failed", error=str(e))
