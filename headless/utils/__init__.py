"""Utilities for headless."""

from .logger import HeadlessLogger, LogLevel, LogLine, configure_logging

__all__ = ["HeadlessLogger", "LogLevel", "LogLine", "configure_logging"]
