"""
headless - async client for the browser remote debugging protocol.

Issue commands and await their replies while events stream in on the same
websocket, subscribe to events with automatic domain enable/disable, and
answer page requests from an HTTP response cache.
"""

__version__ = "0.1.0"

# core must be imported before types and cdp (they import core.errors)
from .core import (
    Connection,
    connect,
    Deregistration,
    Page,
    launch_browser,
    HeadlessError,
    TimeoutError,
    ProtocolError,
    MalformedMessageError,
    EvaluationError,
    ConnectionClosedError,
    BrowserNotAvailableError,
    ConfigurationError,
)

from .types import (
    BrowserOptions,
    CacheOptions,
    ConnectionOptions,
)

from .cache import (
    BaseCache,
    FifoCache,
    ResponseCache,
    request_key,
)

__all__ = [
    # Version
    "__version__",
    # Main classes
    "Connection",
    "connect",
    "Deregistration",
    "Page",
    "launch_browser",
    "ResponseCache",
    "BaseCache",
    "FifoCache",
    "request_key",
    # Options
    "BrowserOptions",
    "CacheOptions",
    "ConnectionOptions",
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
