"""Response cache for headless."""

from .base_cache import BaseCache, FifoCache
from .response_cache import ResponseCache, http_head, raw_response, request_key

__all__ = ["BaseCache", "FifoCache", "ResponseCache", "http_head", "raw_response", "request_key"]
