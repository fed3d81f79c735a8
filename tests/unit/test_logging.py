"""Tests for structured logging setup."""

from __future__ import annotations

import logging

import structlog

from vero.config import LoggingConfig
from vero.telemetry.logging import setup_logging


def test_root_logger_gets_single_handler_and_level():
    setup_logging(LoggingConfig(level="DEBUG", format="json"))
    setup_logging(LoggingConfig(level="WARNING", format="json"))

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)


def test_registry_address_bound_to_context():
    structlog.contextvars.clear_contextvars()
    try:
        setup_logging(LoggingConfig(format="console"), registry_address="0xabc")
        assert structlog.contextvars.get_contextvars()["registry"] == "0xabc"
    finally:
        structlog.contextvars.clear_contextvars()
