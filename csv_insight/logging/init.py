from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Application logging for csv-insight.

Lines are written as ``LABEL message`` where LABEL is one of DEBUG, INFO,
WARN, ERROR or SUMMARY. SUMMARY (level 25) carries the one-line dataset
summary that closes a CLI run, so scripts can grep for it.

Modules log through ``logging.getLogger(__name__)``; everything under the
``csv_insight`` namespace reaches the single handler installed by
setup_logging().
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "set_debug",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "csv_insight"
SUMMARY_LEVEL = 25  # between INFO and WARNING

_app_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """``LABEL message``; tracebacks, when present, follow on the next lines."""

    LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        SUMMARY_LEVEL: "SUMMARY",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LABELS.get(record.levelno, record.levelname)
        line = f"{label} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> logging.Logger:
    """Install the labeled handler on the ``csv_insight`` logger.

    Calling it again returns the already configured logger unchanged.

    Args:
        level: Initial level for the logger and its handler
        stream: Output stream (stdout when None)
    """
    global _app_logger
    if _app_logger is not None:
        return _app_logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    app_logger = logging.getLogger(LOGGER_NAME)
    _detach_handlers(app_logger)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(LabeledFormatter())
    handler.setLevel(level)
    app_logger.addHandler(handler)
    app_logger.setLevel(level)
    # keep lines out of the root logger's handlers
    app_logger.propagate = False

    _app_logger = app_logger
    return app_logger


def _detach_handlers(target: logging.Logger) -> None:
    for handler in list(target.handlers):
        target.removeHandler(handler)


def get_logger() -> logging.Logger:
    """The application logger, configured on first use."""
    return _app_logger if _app_logger is not None else setup_logging()


def set_debug(target: logging.Logger) -> None:
    target.setLevel(logging.DEBUG)
    for handler in target.handlers:
        handler.setLevel(logging.DEBUG)


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger and detach its handler (used by tests)."""
    global _app_logger
    _app_logger = None
    app_logger = logging.getLogger(LOGGER_NAME)
    _detach_handlers(app_logger)
    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True
