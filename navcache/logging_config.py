"""
navcache/logging_config.py
Structured logging setup.

All logs are JSON formatted so simulation runs can be aggregated and grepped.
Follows: Single Responsibility Principle
"""

import json
import logging
from logging import LogRecord
from pathlib import Path
from typing import Any

# Optional context fields copied from ``extra={...}`` into the JSON payload
CONTEXT_FIELDS = ("client_id", "page", "request_id")

_HANDLER_MARKER = "_navcache_handler"


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON documents."""

    def format(self, record: LogRecord) -> str:
        """Convert log record to JSON."""
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field_name in CONTEXT_FIELDS:
            if hasattr(record, field_name):
                log_data[field_name] = getattr(record, field_name)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> None:
    """
    Initialize structured logging for the application.

    Calling this more than once replaces the handlers installed by a previous
    call instead of stacking duplicates.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a file receiving every record (DEBUG and up)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(StructuredFormatter())
    setattr(console_handler, _HANDLER_MARKER, True)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter())
        setattr(file_handler, _HANDLER_MARKER, True)
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with consistent naming.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
