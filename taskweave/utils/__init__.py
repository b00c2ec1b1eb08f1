"""taskweave utilities package."""

from taskweave.utils.logger import get_logger, setup_logging, LogLevel

__all__ = [
    "get_logger",
    "setup_logging",
    "LogLevel",
]
