"""Logging configuration for headless."""

import logging
import os
import sys
from enum import IntEnum
from typing import Any, Dict, List, Optional

import structlog


class LogLevel(IntEnum):
    """Log levels, ordered by verbosity."""
    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3


_STDLIB_LEVELS = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


def configure_logging(verbose: int = 0) -> structlog.BoundLogger:
    """
    Configure structlog for headless.

    Args:
        verbose: Verbosity level (0-3)

    Returns:
        Configured logger instance
    """
    level = LogLevel(max(0, min(verbose, LogLevel.DEBUG)))

    processors: List[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Colored output for terminals, JSON lines otherwise
    if sys.stderr.isatty() and os.getenv("NO_COLOR") is None:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=_STDLIB_LEVELS[level],
    )

    return structlog.get_logger("headless").bind(verbose=verbose)


class LogLine:
    """A structured log line: category, message and extra fields."""

    def __init__(
        self,
        category: str,
        message: str,
        level: LogLevel = LogLevel.INFO,
        auxiliary: Optional[Dict[str, Any]] = None,
    ):
        self.category = category
        self.message = message
        self.level = level
        self.auxiliary = auxiliary or {}

    def to_dict(self) -> Dict[str, Any]:
        auxiliary = dict(self.auxiliary)
        # structlog takes the message as ``event``
        if "event" in auxiliary:
            auxiliary["event_name"] = auxiliary.pop("event")
        return {
            "category": self.category,
            "level": self.level.name,
            **auxiliary,
        }


class HeadlessLogger:
    """Category-aware wrapper around a structlog logger.

    Every call takes a category first (``"connection:execute"``,
    ``"cache:loaded"``), so log lines from the different layers of a
    connection can be filtered without parsing messages.
    """

    def __init__(self, logger: structlog.BoundLogger, verbose: int = 0):
        self.logger = logger
        self.verbose = verbose

    @classmethod
    def for_verbosity(cls, verbose: int = 0) -> 'HeadlessLogger':
        """Configure logging and return a logger for ``verbose``."""
        return cls(configure_logging(verbose), verbose)

    def log(self, log_line: LogLine) -> None:
        if log_line.level.value > self.verbose:
            return

        method_name = "warning" if log_line.level is LogLevel.WARN else log_line.level.name.lower()
        log_method = getattr(self.logger, method_name, self.logger.info)
        log_method(log_line.message, **log_line.to_dict())

    def error(self, category: str, message: str, **kwargs: Any) -> None:
        self.log(LogLine(category, message, LogLevel.ERROR, kwargs))

    def warn(self, category: str, message: str, **kwargs: Any) -> None:
        self.log(LogLine(category, message, LogLevel.WARN, kwargs))

    def info(self, category: str, message: str, **kwargs: Any) -> None:
        self.log(LogLine(category, message, LogLevel.INFO, kwargs))

    def debug(self, category: str, message: str, **kwargs: Any) -> None:
        self.log(LogLine(category, message, LogLevel.DEBUG, kwargs))

    def child(self, **bindings: Any) -> 'HeadlessLogger':
        """Create a child logger with additional context."""
        return HeadlessLogger(self.logger.bind(**bindings), self.verbose)
