"""
Environment-based configuration for Voucher Sentinel.

This module exposes a small, typed configuration surface shared by the
automation core and the command-line front-end. All values are sourced
from environment variables with sensible, non-secret defaults.

No secrets or credentials are hard-coded here; they must be provided via
the environment (or python-dotenv in local development).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Optional

Environment = Literal["local", "dev", "staging", "prod"]

DEFAULT_SITE_BASE_URL = "https://www.sheinindia.in"


@dataclass(frozen=True)
class AppConfig:
    """
    Top-level application configuration.

    The browser profile directory must be a fixed, reused location: login
    cookies written during an interactive login are only picked up by later
    sessions when they launch against the same directory.
    """

    environment: Environment
    log_level: str

    # Optional file path for structured JSON logs; when set, logs are written
    # to file (and stdout if log_stdout).
    log_file: Optional[str]
    log_stdout: bool

    # Browser session
    headless: bool
    stealth: bool
    profile_dir: str

    # Storefront target; selectors may be overridden from a JSON file.
    site_base_url: str
    selectors_file: Optional[str]

    # Debug screenshots (optional instrumentation)
    artifacts_dir: str
    debug_screenshots: bool

    # Protection scheduler
    protection_interval_seconds: int

    # Authorized user list used by the front-end
    users_db_path: str
    admin_id: Optional[str]

    # Telegram notification configuration
    telegram_bot_token: Optional[str]
    telegram_chat_id: Optional[str]

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Construct configuration from environment variables.

        All fields have defaults suitable for local development.
        """

        environment = os.getenv("APP_ENV", "local")

        if environment not in {"local", "dev", "staging", "prod"}:
            raise ValueError(f"Unsupported APP_ENV value: {environment!r}")

        def _bool_env(name: str, default: bool) -> bool:
            raw = (os.getenv(name) or str(default)).strip().lower()
            return raw in ("true", "1", "yes")

        def _protection_interval() -> int:
            raw = os.getenv("PROTECTION_INTERVAL_SECONDS", "180").strip()
            try:
                seconds = int(raw)
            except ValueError:
                return 180
            return max(30, seconds)

        return cls(
            environment=environment,  # type: ignore[arg-type]
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            log_stdout=_bool_env("LOG_STDOUT", True),
            headless=_bool_env("HEADLESS", False),
            stealth=_bool_env("STEALTH", True),
            profile_dir=os.getenv("PROFILE_DIR", "./chrome_profile"),
            site_base_url=(os.getenv("SITE_BASE_URL") or DEFAULT_SITE_BASE_URL).rstrip("/"),
            selectors_file=os.getenv("SITE_SELECTORS_FILE") or None,
            artifacts_dir=os.getenv("ARTIFACTS_DIR", "./artifacts"),
            debug_screenshots=_bool_env("DEBUG_SCREENSHOTS", False),
            protection_interval_seconds=_protection_interval(),
            users_db_path=os.getenv("USERS_DB_PATH", "./database.json"),
            admin_id=os.getenv("ADMIN_ID") or None,
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID") or None,
        )


def get_config() -> AppConfig:
    """
    Helper to obtain the current configuration.

    In long-lived processes, construct a single `AppConfig` at startup and
    pass it explicitly (the browser session keeps the one it was built with).
    """

    return AppConfig.from_env()
