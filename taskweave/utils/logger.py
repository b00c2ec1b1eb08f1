"""
Logging for taskweave.

Provides a consistent logging interface with support for:
- Rich formatting on stderr (stdout carries command output)
- Optional file output, plain or JSON
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER = "taskweave"


class LogLevel(str, Enum):
    """Log levels for taskweave."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def numeric(self) -> int:
        """Get numeric log level."""
        return logging.getLevelName(self.value.upper())


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get a logger under the taskweave namespace.

    Library modules only name their logger; handlers and levels are installed
    once by ``setup_logging`` on the root taskweave logger.

    Args:
        name: Logger name (usually ``__name__``)

    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging(
    level: LogLevel | str = LogLevel.WARNING,
    log_file: str | Path | None = None,
    json_format: bool = False,
    console: bool = True,
) -> logging.Logger:
    """
    Set up logging configuration for taskweave.

    Args:
        level: Minimum log level
        log_file: Optional file path for log output
        json_format: Use JSON format for file logs
        console: Enable console output

    Returns:
        The configured root taskweave logger
    """
    if isinstance(level, str):
        level = LogLevel(level.lower())

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level.numeric)
    root.handlers.clear()
    root.propagate = False

    if console:
        console_handler = _rich_handler()
        console_handler.setLevel(level.numeric)
        root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        if json_format:
            file_handler.setFormatter(JsonFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
            ))
        file_handler.setLevel(level.numeric)
        root.addHandler(file_handler)

    return root


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        task_index = getattr(record, "task_index", None)
        if task_index is not None:
            log_data["task_index"] = task_index

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)
