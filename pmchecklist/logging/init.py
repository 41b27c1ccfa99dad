from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Logging initialization with labeled prefixes.

Engine modules log through ``logging.getLogger(__name__)``; all of them live under
the ``pmchecklist`` logger, so one handler installed here covers the whole package.
The engine itself never calls setup_logging(): configuring output is the caller's
job (a worker, a script, the test suite).

Output format: ``<LABEL> <message>`` with labels INFO|WARN|ERROR|SUMMARY.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "pmchecklist"

# INFO(20) と WARNING(30) の間
SUMMARY_LEVEL = 25

logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter that prefixes each message with its level label.

    - INFO: informational messages
    - WARN: advisory findings and recoverable defaults
    - ERROR: failures reported by callers
    - SUMMARY: one line per parsed worksheet
    """

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> logging.Logger:
    """Install the labeled stdout handler on the package logger (idempotent).

    Args:
        level: Minimum level for the package logger and its handler
        stream: Output stream, stdout when None

    Returns:
        The configured ``pmchecklist`` logger
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    # ルートへ伝播させない
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the configured package logger, configuring it on first use."""
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str, *args: object) -> None:
    """Log a %-style message at SUMMARY level on the package logger."""
    logging.getLogger(LOGGER_NAME).log(SUMMARY_LEVEL, message, *args)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            _logger.removeHandler(handler)
        _logger.propagate = True
    _logger = None
