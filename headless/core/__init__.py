"""Core headless components."""

from .connection import Connection, connect
from .commands import CommandCorrelator, PendingCommand
from .dispatcher import Dispatcher
from .events import Deregistration, EventSubscriptions, domain_name, handlers_for_domain
from .page import Page
from .browser import launch_browser, wait_until_ready
from .errors import (
    HeadlessError,
    TimeoutError,
    ProtocolError,
    MalformedMessageError,
    EvaluationError,
    ConnectionClosedError,
    BrowserNotAvailableError,
    ConfigurationError,
)

__all__ = [
    # Main classes
    "Connection",
    "connect",
    "CommandCorrelator",
    "PendingCommand",
    "Dispatcher",
    "Deregistration",
    "EventSubscriptions",
    "domain_name",
    "handlers_for_domain",
    "Page",
    "launch_browser",
    "wait_until_ready",
    # Errors
    "HeadlessError",
    "TimeoutError",
    "ProtocolError",
    "MalformedMessageError",
    "EvaluationError",
    "ConnectionClosedError",
    "BrowserNotAvailableError",
    "ConfigurationError",
]
