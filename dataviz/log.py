from __future__ import annotations
import logging
import os
import sys
from typing import Optional

LOGGER_NAME = "dataviz"
LOG_LEVEL_ENV = "DATAVIZ_LOG_LEVEL"

_logger: Optional[logging.Logger] = None


class LabeledFormatter(logging.Formatter):
    """Prefijo corto por nivel: INFO / WARN / ERROR."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        msg = f"{label} [{record.name}] {record.getMessage()}"
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"
        return msg


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configura el logger del paquete (idempotente).
    Nivel: argumento, variable DATAVIZ_LOG_LEVEL o INFO.
    """
    global _logger
    if _logger is not None:
        return _logger

    lvl_name = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    lvl = logging.getLevelName(lvl_name)
    if not isinstance(lvl, int):
        lvl = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(lvl)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(lvl)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    _logger = logger
    return logger

def reset_logging() -> None:
    # para tests
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            _logger.removeHandler(handler)
        _logger.propagate = True
    _logger = None
