from __future__ import annotations

import logging

from dataviz.log import LOGGER_NAME, LabeledFormatter, reset_logging, setup_logging


def test_setup_is_idempotent():
    first = setup_logging("DEBUG")
    second = setup_logging("ERROR")
    assert first is second
    assert first.name == LOGGER_NAME
    assert first.level == logging.DEBUG
    assert len(first.handlers) == 1


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("DATAVIZ_LOG_LEVEL", "warning")
    assert setup_logging().level == logging.WARNING


def test_unknown_level_defaults_to_info():
    assert setup_logging("verbose").level == logging.INFO


def test_reset_removes_handlers():
    logger = setup_logging()
    reset_logging()
    assert logger.handlers == []
    assert setup_logging() is logger
    assert len(logger.handlers) == 1


def test_formatter_labels():
    record = logging.LogRecord("dataviz.ingest", logging.WARNING, __file__, 1, "sin %s", ("datos",), None)
    assert LabeledFormatter().format(record) == "WARN [dataviz.ingest] sin datos"
