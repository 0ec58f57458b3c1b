"""Tests for the response cache and its storage."""

import asyncio
import base64

import pytest

from headless import CacheOptions, FifoCache, ProtocolError, ResponseCache, request_key
from headless.cache.response_cache import CACHE_PROPERTY_KEYS, http_head, raw_response

from conftest import RemoteFailure, eventually

URL = "http://example.test/"
REQUEST = {"url": URL, "method": "GET", "headers": {"Accept": "text/html"}}
RESPONSE = {"status": 200, "statusText": "OK", "headers": {"Content-Type": "text/html"}}


class TestRequestKey:
    """Tests for request_key."""

    def test_headers_are_ignored(self):
        other = {"url": URL, "method": "GET", "headers": {"Accept": "*/*"}}

        assert request_key(REQUEST) == request_key(other)

    def test_method_and_body_distinguish_requests(self):
        get = request_key({"url": URL, "method": "GET"})
        post = request_key({"url": URL, "method": "POST", "postData": "a=1"})
        other_post = request_key({"url": URL, "method": "POST", "postData": "a=2"})

        assert len({get, post, other_post}) == 3

    def test_missing_body_differs_from_empty_body(self):
        assert request_key({"url": URL, "method": "POST"}) != request_key(
            {"url": URL, "method": "POST", "postData": ""}
        )


class TestFifoCache:
    """Tests for FifoCache."""

    def test_evicts_oldest_insertion(self):
        """Inserting K+1 distinct keys evicts exactly the first one."""
        cache = FifoCache(3)
        for key in ["a", "b", "c", "d"]:
            cache.put(key, key.upper())

        assert "a" not in cache
        assert [cache.get(key) for key in ["b", "c", "d"]] == ["B", "C", "D"]
        assert len(cache) == 3

    def test_overwrite_keeps_position(self):
        cache = FifoCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("a", 3)
        cache.put("c", 4)

        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 4

    def test_missing_key(self):
        cache = FifoCache(1)

        assert cache.get("missing") is None
        assert cache.contains("missing") is False

    def test_size_must_be_positive(self):
        with pytest.raises(ValueError):
            FifoCache(0)


class TestRawResponse:
    """Tests for building replayable responses."""

    def test_http_head(self):
        assert http_head(RESPONSE) == "HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n\r\n"

    def test_raw_response_adds_content_length(self):
        raw = raw_response("<p>é</p>", headers={"Content-Type": "text/html"})

        assert raw == (
            b"HTTP/1.1 200 OK\r\nContent-Length: 9\r\nContent-Type: text/html\r\n\r\n"
            + "<p>é</p>".encode("utf-8")
        )


class TestEnableDisable:
    """Tests for attaching the cache to a connection."""

    @pytest.mark.asyncio
    async def test_enable_turns_on_interception(self, browser, connection):
        cache = ResponseCache(connection)

        await cache.enable()

        assert cache.enabled
        assert browser.last("Network.setRequestInterception")["params"] == {
            "patterns": [{"urlPattern": "*"}]
        }
        assert browser.count("Network.enable") == 1
        for key in CACHE_PROPERTY_KEYS:
            assert key in connection.properties

    @pytest.mark.asyncio
    async def test_enable_twice_keeps_one_set_of_handlers(self, connection):
        """Re-enabling replaces the previous cache instead of stacking it."""
        await ResponseCache(connection).enable()
        await ResponseCache(connection).enable()

        assert len(connection.event_handlers["Network.requestIntercepted"]) == 1
        assert len(connection.event_handlers["Network.loadingFinished"]) == 1

    @pytest.mark.asyncio
    async def test_enable_uses_configured_capacity(self, connection):
        cache = ResponseCache(connection, CacheOptions(max_responses=7))

        await cache.enable()

        assert cache.responses.max_size == 7

    @pytest.mark.asyncio
    async def test_disable_removes_everything(self, browser, connection):
        cache = ResponseCache(connection)
        await cache.enable()

        await cache.disable()

        assert not cache.enabled
        assert cache.responses is None
        for key in CACHE_PROPERTY_KEYS:
            assert key not in connection.properties
        assert "Network.requestIntercepted" not in connection.event_handlers
        assert browser.last("Network.setRequestInterception")["params"] == {"patterns": []}
        assert browser.count("Network.disable") == 1

    @pytest.mark.asyncio
    async def test_disable_when_not_enabled(self, browser, connection):
        await ResponseCache(connection).disable()

        assert browser.count("Network.setRequestInterception") == 0

    @pytest.mark.asyncio
    async def test_disable_removes_handlers_when_interception_fails(self, browser, connection):
        """Handlers are removed even if turning interception off fails."""
        cache = ResponseCache(connection)
        await cache.enable()

        def fail(params):
            raise RemoteFailure({"code": -32000, "message": "Target closed"})

        browser.responders["Network.setRequestInterception"] = fail

        with pytest.raises(ProtocolError):
            await cache.disable()

        assert not cache.enabled
        for event_name in ["Network.requestWillBeSent", "Network.requestIntercepted"]:
            assert event_name not in connection.event_handlers
        assert browser.count("Network.disable") == 1

    @pytest.mark.asyncio
    async def test_concurrent_enables_keep_one_set_of_handlers(self, connection):
        """Racing enables on one connection leave a single cache behind."""
        await asyncio.gather(
            ResponseCache(connection).enable(),
            ResponseCache(connection).enable(),
        )

        assert len(connection.event_handlers["Network.requestIntercepted"]) == 1

        await ResponseCache(connection).disable()

        assert "Network.requestIntercepted" not in connection.event_handlers
        assert "Network.loadingFinished" not in connection.event_handlers


class TestCaching:
    """Tests for stitching network events into cached responses."""

    async def load(self, browser, request_id, body, base64_encoded=False):
        browser.emit("Network.requestWillBeSent", {"requestId": request_id, "request": REQUEST})
        browser.emit("Network.responseReceived", {"requestId": request_id, "response": RESPONSE})
        browser.responders["Network.getResponseBody"] = lambda params: {
            "body": body,
            "base64Encoded": base64_encoded,
        }
        browser.emit("Network.loadingFinished", {"requestId": request_id})

    @pytest.mark.asyncio
    async def test_loaded_response_is_stored(self, browser, connection):
        cache = ResponseCache(connection)
        await cache.enable()

        await self.load(browser, "r1", "<p>hi</p>")
        await eventually(lambda: cache.responses.contains(request_key(REQUEST)))

        assert cache.responses.get(request_key(REQUEST)) == (
            b"HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n\r\n<p>hi</p>"
        )
        assert browser.last("Network.getResponseBody")["params"] == {"requestId": "r1"}

    @pytest.mark.asyncio
    async def test_base64_body_is_decoded(self, browser, connection):
        cache = ResponseCache(connection)
        await cache.enable()
        png = b"\x89PNG\r\n\x1a\n"

        await self.load(browser, "r1", base64.b64encode(png).decode("ascii"), base64_encoded=True)
        await eventually(lambda: cache.responses.contains(request_key(REQUEST)))

        assert cache.responses.get(request_key(REQUEST)).endswith(b"\r\n\r\n" + png)

    @pytest.mark.asyncio
    async def test_first_loaded_response_wins(self, browser, connection):
        """A later fetch of the same resource does not replace the cached one."""
        cache = ResponseCache(connection)
        await cache.enable()

        await self.load(browser, "r1", "first")
        await eventually(lambda: cache.responses.contains(request_key(REQUEST)))
        await self.load(browser, "r2", "second")
        await asyncio.sleep(0.01)

        assert browser.count("Network.getResponseBody") == 1
        assert cache.responses.get(request_key(REQUEST)).endswith(b"first")

    @pytest.mark.asyncio
    async def test_intercepted_hit_is_answered_from_cache(self, browser, connection):
        cache = ResponseCache(connection)
        store = FifoCache(10)
        store.put(request_key(REQUEST), raw_response("cached"))
        await cache.enable(store)

        browser.emit("Network.requestIntercepted", {"interceptionId": "i1", "request": REQUEST})
        await eventually(lambda: browser.count("Network.continueInterceptedRequest") == 1)

        params = browser.last("Network.continueInterceptedRequest")["params"]
        assert params["interceptionId"] == "i1"
        assert base64.b64decode(params["rawResponse"]) == raw_response("cached")

    @pytest.mark.asyncio
    async def test_intercepted_miss_passes_through(self, browser, connection):
        await ResponseCache(connection).enable()

        browser.emit("Network.requestIntercepted", {"interceptionId": "i1", "request": REQUEST})
        await eventually(lambda: browser.count("Network.continueInterceptedRequest") == 1)

        assert browser.last("Network.continueInterceptedRequest")["params"] == {"interceptionId": "i1"}

    @pytest.mark.asyncio
    async def test_loaded_then_intercepted(self, browser, connection):
        """A response loaded once is replayed for the next identical request."""
        cache = ResponseCache(connection)
        await cache.enable()
        await self.load(browser, "r1", "<p>hi</p>")
        await eventually(lambda: cache.responses.contains(request_key(REQUEST)))

        browser.emit("Network.requestIntercepted", {"interceptionId": "i2", "request": REQUEST})
        await eventually(lambda: browser.count("Network.continueInterceptedRequest") == 1)

        params = browser.last("Network.continueInterceptedRequest")["params"]
        assert base64.b64decode(params["rawResponse"]).endswith(b"<p>hi</p>")
