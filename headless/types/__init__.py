"""Type definitions for headless."""

from .config import BrowserOptions, CacheOptions, ConnectionOptions, build_options
from .protocol import Command, NetworkRequest, NetworkResponse

__all__ = [
    # Configuration
    "BrowserOptions",
    "CacheOptions",
    "ConnectionOptions",
    "build_options",
    # Wire messages
    "Command",
    "NetworkRequest",
    "NetworkResponse",
]
