"""
structlog setup for the bot, the protection scheduler and the CLI.

Every record is one JSON line with `message`, `level` and a UTC `timestamp`,
plus whatever operation context is bound (operation, url, watcher).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog

_PLAIN = logging.Formatter("%(message)s")


def _build_shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.EventRenamer("message"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def _with_level(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(_PLAIN)
    return handler


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_stdout: bool = True,
) -> None:
    """
    Route structlog output to stdout and/or LOG_FILE.

    Replaces any handlers already on the root logger. With stdout disabled and
    no file set, stdout is still used so bot output is never lost.
    """

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_stdout:
        root.addHandler(_with_level(logging.StreamHandler(sys.stdout), level))

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        root.addHandler(_with_level(logging.FileHandler(log_file, encoding="utf-8"), level))

    if not root.handlers:
        root.addHandler(_with_level(logging.StreamHandler(sys.stdout), level))

    structlog.configure(
        processors=_build_shared_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Module logger; configures INFO/stdout on first use if the CLI has not."""

    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_request_context(
    *,
    operation: Optional[str] = None,
    url: Optional[str] = None,
    watcher: Optional[str] = None,
    **extra: Any,
) -> Mapping[str, Any]:
    """
    Tag subsequent records with the running operation.

    `operation` is the bot command (check_coupons, scan_catalog, ...), `url`
    the page it targets and `watcher` the chat a protection cycle reports to.
    None values are not bound. Returns what was bound.
    """

    context = {"operation": operation, "url": url, "watcher": watcher, **extra}
    bound = {k: v for k, v in context.items() if v is not None}

    structlog.contextvars.bind_contextvars(**bound)
    return bound


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
