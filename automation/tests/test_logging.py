"""Unit tests for logging handlers and bound operation context."""

from __future__ import annotations

import logging

import pytest
import structlog

from shared.logging import bind_request_context, clear_request_context, configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_request_context()


def test_stdout_disabled_without_file_keeps_stdout(restore_root_logger):
    configure_logging(log_stdout=False)

    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0], logging.StreamHandler)


def test_log_file_handler_creates_parent_dir(restore_root_logger, tmp_path):
    log_file = tmp_path / "logs" / "bot.log"

    configure_logging(log_file=str(log_file), log_stdout=False)

    assert log_file.parent.is_dir()
    assert [type(h) for h in restore_root_logger.handlers] == [logging.FileHandler]
    restore_root_logger.handlers[0].close()


def test_bind_request_context_skips_none(restore_root_logger):
    bound = bind_request_context(operation="check_coupons", url=None, watcher="42", batch=3)

    assert bound == {"operation": "check_coupons", "watcher": "42", "batch": 3}
    assert structlog.contextvars.get_contextvars() == bound

    clear_request_context()
    assert structlog.contextvars.get_contextvars() == {}
