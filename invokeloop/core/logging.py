"""Structured JSON logging for invokeloop."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from invokeloop.core.context import get_request_id

# Dynamically derive standard LogRecord attributes at module import time
_STANDARD_LOGRECORD_KEYS: frozenset[str] = frozenset(
    logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
    ).__dict__.keys()
)


class JSONFormatter(logging.Formatter):
    """JSON line formatter with UTC ISO8601 timestamps.

    The request id of the invocation being dispatched is attached to every
    record emitted while a runner executes.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        for key, value in vars(record).items():
            if key not in _STANDARD_LOGRECORD_KEYS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)

        try:
            return json.dumps(log_data, default=str)
        except Exception:
            return str(log_data)


class _BelowLevelFilter(logging.Filter):
    """Pass only records strictly below ``level``."""

    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def _setup_json_handler(logger: logging.Logger, level: int | str) -> None:
    # Log lines go to stdout, error lines to stderr.
    if not logger.handlers:
        out_handler = logging.StreamHandler(sys.stdout)
        out_handler.addFilter(_BelowLevelFilter(logging.ERROR))
        out_handler.setFormatter(JSONFormatter())
        logger.addHandler(out_handler)

        err_handler = logging.StreamHandler(sys.stderr)
        err_handler.setLevel(logging.ERROR)
        err_handler.setFormatter(JSONFormatter())
        logger.addHandler(err_handler)
    logger.setLevel(level)
    logger.propagate = False


def configure_runtime_logger(level: int | str = logging.INFO) -> logging.Logger:
    """Configure and return the invocation loop logger.

    Args:
        level: The logging level to set. Defaults to logging.INFO.
    """
    logger = logging.getLogger("invokeloop.runtime")
    _setup_json_handler(logger, level)
    return logger


def get_logger(name: str = "invokeloop", level: int | str = logging.INFO) -> logging.Logger:
    """Get a logger with JSON formatting, e.g. for use inside runners."""
    logger = logging.getLogger(name)
    _setup_json_handler(logger, level)
    return logger
