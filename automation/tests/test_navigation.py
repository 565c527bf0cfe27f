"""
Unit tests for tolerant navigation and the small page-text helpers.

No Playwright/network required.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from automation.crawl.navigation import (
    _classify_failure,
    contains_any,
    has_any_selector,
    navigate_tolerant,
    read_body_text,
)
from automation.crawl.readiness import dismiss_overlay, scroll_pulses

URL = "https://www.sheinindia.in/cart"


def test_classify_failure():
    assert _classify_failure(PlaywrightTimeoutError("Timeout 60000ms exceeded")) == (
        "navigation_timeout"
    )
    assert _classify_failure(Exception("net::ERR_CONNECTION_RESET at https://x")) == "net_err"
    assert _classify_failure(ValueError("boom")) == "other"


@pytest.mark.asyncio
async def test_navigate_success_returns_status():
    response = MagicMock()
    response.status = 200
    page = AsyncMock()
    page.url = URL
    page.goto = AsyncMock(return_value=response)

    result = await navigate_tolerant(page, URL)

    assert result.status == 200
    assert result.timed_out is False
    assert result.url == URL
    page.goto.assert_awaited_once_with(URL, wait_until="domcontentloaded", timeout=60_000)


@pytest.mark.asyncio
async def test_navigate_timeout_is_tolerated():
    page = AsyncMock()
    page.url = "https://www.sheinindia.in/cart?from=redirect"
    page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 60000ms exceeded"))

    result = await navigate_tolerant(page, URL)

    assert result.timed_out is True
    assert result.response is None
    assert result.status is None
    assert result.url == "https://www.sheinindia.in/cart?from=redirect"


@pytest.mark.asyncio
async def test_navigate_timeout_reraised_when_not_tolerated():
    page = AsyncMock()
    page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 30000ms exceeded"))

    with pytest.raises(PlaywrightTimeoutError):
        await navigate_tolerant(page, URL, tolerate_timeout=False)


@pytest.mark.asyncio
async def test_navigate_other_errors_propagate():
    page = AsyncMock()
    page.goto = AsyncMock(side_effect=Exception("net::ERR_NAME_NOT_RESOLVED"))

    with pytest.raises(Exception, match="ERR_NAME_NOT_RESOLVED"):
        await navigate_tolerant(page, URL)


@pytest.mark.asyncio
async def test_read_body_text_lowercases():
    page = AsyncMock()
    page.evaluate = AsyncMock(return_value="Access DENIED")

    assert await read_body_text(page) == "access denied"


def test_contains_any_is_case_insensitive():
    assert contains_any("Please Enable Cookies", ("please enable cookies",))
    assert not contains_any("", ("sign in",))


@pytest.mark.asyncio
async def test_has_any_selector():
    page = MagicMock()
    empty = MagicMock()
    empty.count = AsyncMock(return_value=0)
    present = MagicMock()
    present.count = AsyncMock(return_value=1)
    page.locator = MagicMock(side_effect=[empty, present])

    assert await has_any_selector(page, [".login-box", "#login-box"]) is True


@pytest.mark.asyncio
async def test_scroll_pulses_counts_and_waits():
    page = AsyncMock()

    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
        done = await scroll_pulses(page, 5, 1000, 0.8)

    assert done == 5
    assert page.evaluate.await_count == 5
    assert sleep.await_count == 5


@pytest.mark.asyncio
async def test_scroll_pulses_stops_on_error():
    page = AsyncMock()
    page.evaluate = AsyncMock(side_effect=[None, RuntimeError("detached")])

    assert await scroll_pulses(page, 5, 500) == 1


@pytest.mark.asyncio
async def test_dismiss_overlay_never_raises():
    page = MagicMock()
    page.mouse.click = AsyncMock(side_effect=RuntimeError("no page"))

    await dismiss_overlay(page)

    page.mouse.click.assert_awaited_once_with(10, 10)
