"""Transport and target discovery for the remote debugging protocol."""

from .targets import browser_version, list_pages, open_page, page_ws_url
from .transport import Transport, WebSocketTransport

__all__ = [
    "Transport",
    "WebSocketTransport",
    "browser_version",
    "list_pages",
    "open_page",
    "page_ws_url",
]
