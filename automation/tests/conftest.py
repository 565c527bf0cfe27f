"""
Shared fixtures: an in-memory AppConfig and a fake Playwright driver.

No browser or network is used; the fake driver hands out AsyncMock pages.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.config import AppConfig


def make_config(tmp_path, **overrides) -> AppConfig:
    values = dict(
        environment="local",
        log_level="INFO",
        log_file=None,
        log_stdout=True,
        headless=True,
        stealth=False,
        profile_dir=str(tmp_path / "profile"),
        site_base_url="https://www.sheinindia.in",
        selectors_file=None,
        artifacts_dir=str(tmp_path / "artifacts"),
        debug_screenshots=False,
        protection_interval_seconds=180,
        users_db_path=str(tmp_path / "database.json"),
        admin_id=None,
        telegram_bot_token=None,
        telegram_chat_id=None,
    )
    values.update(overrides)
    return AppConfig(**values)


class FakePlaywright:
    """Stands in for `async_playwright`; records launches and returns one mock page."""

    def __init__(self, page_url: str = "about:blank") -> None:
        self.page = AsyncMock()
        self.page.url = page_url
        self.context = MagicMock()
        self.context.pages = []
        self.context.new_page = AsyncMock(return_value=self.page)
        self.context.close = AsyncMock()
        self.driver = MagicMock()
        self.driver.chromium.launch_persistent_context = AsyncMock(return_value=self.context)
        self.driver.stop = AsyncMock()
        self.starts = 0

    def __call__(self):
        manager = MagicMock()

        async def start():
            self.starts += 1
            return self.driver

        manager.start = start
        return manager

    @property
    def launches(self) -> int:
        return self.driver.chromium.launch_persistent_context.await_count


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return make_config(tmp_path)


@pytest.fixture
def fake_playwright() -> FakePlaywright:
    return FakePlaywright(page_url="https://www.sheinindia.in/cart")


@pytest.fixture
def config_factory(tmp_path):
    """Build an AppConfig rooted in tmp_path with field overrides."""

    def factory(**overrides) -> AppConfig:
        return make_config(tmp_path, **overrides)

    return factory
