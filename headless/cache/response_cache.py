"""
HTTP response cache served through request interception.

During development the same pages are often fetched many times in a row.
The debugging protocol can pause outgoing requests and answer them with a
raw response, but the pieces needed to build that response arrive on three
events that do not share one id:

- Network.requestWillBeSent carries the request and a request id,
- Network.responseReceived carries status and headers for a request id,
- Network.loadingFinished signals (by request id) that the body can be fetched,

while Network.requestIntercepted carries the request and an interception id.
Request ids change on every fetch, so everything is keyed by a request key
derived from the request itself: the tuple (url, method, body).
"""

import asyncio
import base64
import hashlib
import json
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

from ..types.config import CacheOptions
from ..types.protocol import NetworkRequest, NetworkResponse
from .base_cache import BaseCache, FifoCache

if TYPE_CHECKING:
    from ..core.connection import Connection

REQUESTS_KEY = "cache/requests"
RESPONSE_HEADS_KEY = "cache/response_heads"
RESPONSES_KEY = "cache/responses"
DEREGISTER_KEY = "cache/deregister"

CACHE_PROPERTY_KEYS = (REQUESTS_KEY, RESPONSE_HEADS_KEY, RESPONSES_KEY, DEREGISTER_KEY)

# Kept across disable; serializes enable and disable on one connection
LOCK_KEY = "response_cache/lock"


def request_key(request: Mapping[str, Any]) -> str:
    """
    Key identifying a request by url, method and body.

    Headers are ignored. Two requests with the same key are treated as the
    same resource fetch. SHA-256 collisions are an accepted risk.
    """
    parsed = NetworkRequest.model_validate(request)
    hash_input = json.dumps([parsed.url, parsed.method, parsed.post_data])
    return hashlib.sha256(hash_input.encode()).hexdigest()


def http_head(response: Mapping[str, Any]) -> str:
    """Status line and headers of ``response``, ending with a blank line."""
    parsed = NetworkResponse.model_validate(response)
    lines = [f"HTTP/1.1 {parsed.status} {parsed.status_text}"]
    lines += [f"{name}: {value}" for name, value in parsed.headers.items()]
    return "\r\n".join(lines) + "\r\n\r\n"


def raw_response(
    body: str,
    status: int = 200,
    status_text: str = "OK",
    headers: Optional[Dict[str, str]] = None,
) -> bytes:
    """Build a replayable HTTP/1.1 response, e.g. to pre-populate a store."""
    body_bytes = body.encode("utf-8")
    headers = {"Content-Length": str(len(body_bytes)), **(headers or {})}
    head = http_head({"status": status, "statusText": status_text, "headers": headers})
    return head.encode("utf-8") + body_bytes


class ResponseCache:
    """
    Response cache for one connection.

    All state lives in ``connection.properties`` under the ``cache/*`` keys,
    so every ResponseCache bound to the same connection controls the same
    cache. The first loaded response for a request key is kept for good;
    there is no invalidation.
    """

    def __init__(self, connection: 'Connection', options: Optional[CacheOptions] = None):
        self.connection = connection
        self.options = options or CacheOptions()
        self._logger = connection.logger.child(component="cache")

    @property
    def enabled(self) -> bool:
        return DEREGISTER_KEY in self.connection.properties

    @property
    def responses(self) -> Optional[BaseCache]:
        """Store of cached responses, None while disabled."""
        return self.connection.properties.get(RESPONSES_KEY)

    def _lock(self) -> asyncio.Lock:
        return self.connection.properties.setdefault(LOCK_KEY, asyncio.Lock())

    async def enable(self, store: Optional[BaseCache] = None) -> None:
        """
        Enable the cache, replacing any cache already enabled on the connection.

        Args:
            store: Storage for cached responses (default: FifoCache of
                ``options.max_responses`` entries)
        """
        async with self._lock():
            await self._disable()
            await self._enable(store)

    async def _enable(self, store: Optional[BaseCache]) -> None:
        properties = self.connection.properties
        properties[REQUESTS_KEY] = FifoCache(self.options.max_concurrent_requests)
        properties[RESPONSE_HEADS_KEY] = FifoCache(self.options.max_concurrent_requests)
        properties[RESPONSES_KEY] = store if store is not None else FifoCache(self.options.max_responses)

        handlers = {
            "Network.requestWillBeSent": self.on_request,
            "Network.responseReceived": self.on_response,
            "Network.loadingFinished": self.on_loaded,
            "Network.requestIntercepted": self.on_intercepted,
        }
        deregistrations = []
        try:
            for event_name, handler in handlers.items():
                deregistrations.append(
                    await self.connection.register_event_handler(event_name, handler)
                )
        except BaseException:
            for key in CACHE_PROPERTY_KEYS:
                properties.pop(key, None)
            for deregister in deregistrations:
                await deregister()
            raise

        async def deregister_all() -> None:
            for deregister in deregistrations:
                await deregister()

        properties[DEREGISTER_KEY] = deregister_all
        await self.connection.execute(
            "Network.setRequestInterception", {"patterns": [{"urlPattern": "*"}]}
        )
        self._logger.info("cache:enable", "Response cache enabled")

    async def disable(self) -> None:
        """Remove the cache from the connection. No-op when not enabled."""
        async with self._lock():
            await self._disable()

    async def _disable(self) -> None:
        properties = self.connection.properties
        deregister = properties.pop(DEREGISTER_KEY, None)
        for key in (REQUESTS_KEY, RESPONSE_HEADS_KEY, RESPONSES_KEY):
            properties.pop(key, None)

        if deregister is None:
            return

        # Stop pausing requests before nobody is left to continue them
        try:
            await self.connection.execute("Network.setRequestInterception", {"patterns": []})
        finally:
            await deregister()
        self._logger.info("cache:disable", "Response cache disabled")

    def on_request(self, params: Dict[str, Any]) -> None:
        """Remember the request key for the request id."""
        requests = self.connection.properties.get(REQUESTS_KEY)
        if requests is None:
            return
        requests.put(params["requestId"], request_key(params["request"]))

    def on_response(self, params: Dict[str, Any]) -> None:
        """Store the response head (status line + headers) on the request key."""
        properties = self.connection.properties
        requests = properties.get(REQUESTS_KEY)
        heads = properties.get(RESPONSE_HEADS_KEY)
        responses = properties.get(RESPONSES_KEY)
        if requests is None or heads is None or responses is None:
            return

        key = requests.get(params["requestId"])
        if key is None or responses.contains(key):
            return
        heads.put(key, http_head(params["response"]).encode("utf-8"))

    async def on_loaded(self, params: Dict[str, Any]) -> None:
        """Fetch the finished body and cache head + body on the request key."""
        properties = self.connection.properties
        requests = properties.get(REQUESTS_KEY)
        heads = properties.get(RESPONSE_HEADS_KEY)
        responses = properties.get(RESPONSES_KEY)
        if requests is None or heads is None or responses is None:
            return

        request_id = params["requestId"]
        key = requests.get(request_id)
        if key is None or responses.contains(key):
            return
        head = heads.get(key)
        if head is None:
            self._logger.debug("cache:loaded", "No response head for request", request_id=request_id)
            return

        result = await self.connection.execute("Network.getResponseBody", {"requestId": request_id})
        body = result.get("body", "")
        if result.get("base64Encoded"):
            body_bytes = base64.b64decode(body)
        else:
            body_bytes = body.encode("utf-8")

        # A concurrent load of the same resource may have finished first
        if responses.contains(key):
            return
        responses.put(key, head + body_bytes)
        self._logger.debug("cache:loaded", "Response cached", request_id=request_id, size=len(body_bytes))

    async def on_intercepted(self, params: Dict[str, Any]) -> None:
        """Answer an intercepted request from the cache, or let it through."""
        responses = self.connection.properties.get(RESPONSES_KEY)
        cached = responses.get(request_key(params["request"])) if responses is not None else None

        continue_params: Dict[str, Any] = {"interceptionId": params["interceptionId"]}
        if cached is not None:
            continue_params["rawResponse"] = base64.b64encode(cached).decode("ascii")
            self._logger.debug("cache:intercepted", "Cache hit", url=params["request"].get("url"))
        await self.connection.execute("Network.continueInterceptedRequest", continue_params)
