"""Pytest configuration and shared fixtures."""

import asyncio
import base64
import json
import re
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytest_asyncio

from headless import ConnectionClosedError, connect
from headless.cdp import Transport

_CLOSED = object()


class RemoteFailure(Exception):
    """Raised by a responder to answer a command with an error payload."""

    def __init__(self, error: Dict[str, Any]):
        super().__init__(error.get("message"))
        self.error = error


class FakeBrowser(Transport):
    """
    In-memory transport that answers commands like a browser would.

    Responders map a method to a callable taking the params and returning the
    result; they may call ``emit`` to push events ahead of the reply. Methods
    in ``silent`` are never answered.
    """

    def __init__(self) -> None:
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.sent: List[Dict[str, Any]] = []
        self.responders: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self.silent: set = set()
        self.closed = False

    def methods(self) -> List[str]:
        return [command["method"] for command in self.sent]

    def count(self, method: str) -> int:
        return self.methods().count(method)

    def last(self, method: str) -> Dict[str, Any]:
        return [command for command in self.sent if command["method"] == method][-1]

    def emit(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        self.inbox.put_nowait(json.dumps({"method": method, "params": params or {}}))

    def reply(self, command_id: int, result: Any = None, error: Any = None) -> None:
        frame: Dict[str, Any] = {"id": command_id}
        if error is not None:
            frame["error"] = error
        else:
            frame["result"] = result if result is not None else {}
        self.inbox.put_nowait(json.dumps(frame))

    def push_raw(self, raw: str) -> None:
        self.inbox.put_nowait(raw)

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosedError("fake browser closed")
        command = json.loads(message)
        self.sent.append(command)
        if command["method"] in self.silent:
            return

        responder = self.responders.get(command["method"])
        try:
            result = responder(command["params"]) if responder else {}
        except RemoteFailure as e:
            self.reply(command["id"], error=e.error)
            return
        self.reply(command["id"], result)

    async def recv(self) -> str:
        item = await self.inbox.get()
        if item is _CLOSED:
            raise ConnectionClosedError("fake browser closed")
        return item

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.inbox.put_nowait(_CLOSED)


class FakePageBrowser(FakeBrowser):
    """
    FakeBrowser that loads pages through request interception.

    Navigation pauses the request with Network.requestIntercepted. Continuing
    it with a rawResponse loads the body of that response as the document;
    continuing without one loads ``network[url]`` (or fails when unknown).
    Elements are found with a naive regex on the loaded html.
    """

    def __init__(self, network: Optional[Dict[str, str]] = None) -> None:
        super().__init__()
        self.network = network or {}
        self.html = ""
        self._intercepted: Dict[str, str] = {}
        self._nodes: Dict[int, str] = {}
        self._next_node = 2
        self.responders.update({
            "Page.navigate": self._navigate,
            "Network.continueInterceptedRequest": self._continue,
            "DOM.getDocument": lambda params: {"root": {"nodeId": 1}},
            "DOM.querySelector": self._query_selector,
            "DOM.querySelectorAll": self._query_selector_all,
            "DOM.resolveNode": lambda params: {"object": {"objectId": f"node-{params['nodeId']}"}},
            "Runtime.callFunctionOn": self._call_function_on,
        })

    def _navigate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        interception_id = f"interception-{len(self._intercepted) + 1}"
        self._intercepted[interception_id] = params["url"]
        self.emit("Network.requestIntercepted", {
            "interceptionId": interception_id,
            "request": {"url": params["url"], "method": "GET", "headers": {}},
        })
        return {"frameId": "main"}

    def _continue(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = self._intercepted.pop(params["interceptionId"])
        if "rawResponse" in params:
            raw = base64.b64decode(params["rawResponse"]).decode("utf-8")
            self.html = raw.split("\r\n\r\n", 1)[1]
        elif url in self.network:
            self.html = self.network[url]
        else:
            raise RemoteFailure({"code": -32000, "message": f"net::ERR_NAME_NOT_RESOLVED {url}"})
        self._nodes = {}
        self.emit("Page.frameStoppedLoading", {"frameId": "main"})
        return {}

    def _elements(self, selector: str) -> List[int]:
        node_ids = []
        for match in re.finditer(rf"<{selector}\b[^>]*>(.*?)</{selector}>", self.html, re.S):
            self._nodes[self._next_node] = match.group(1)
            node_ids.append(self._next_node)
            self._next_node += 1
        return node_ids

    def _query_selector(self, params: Dict[str, Any]) -> Dict[str, Any]:
        node_ids = self._elements(params["selector"])
        return {"nodeId": node_ids[0] if node_ids else 0}

    def _query_selector_all(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"nodeIds": self._elements(params["selector"])}

    def _call_function_on(self, params: Dict[str, Any]) -> Dict[str, Any]:
        node_id = int(params["objectId"].split("-", 1)[1])
        function = params["functionDeclaration"]
        if "throw" in function:
            return {
                "result": {"type": "object", "subtype": "error"},
                "exceptionDetails": {"text": "Uncaught", "exception": {"description": "Error: boom"}},
            }
        if "innerText" in function:
            return {"result": {"type": "string", "value": re.sub(r"<[^>]+>", "", self._nodes[node_id])}}
        return {"result": {"type": "undefined"}}


async def eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Wait until ``predicate`` holds; event handlers run in their own tasks."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def handler_errors() -> List[Any]:
    """Collects (exception, context) pairs reported by event handlers."""
    return []


@pytest_asyncio.fixture
async def browser() -> FakeBrowser:
    return FakeBrowser()


@pytest_asyncio.fixture
async def connection(browser, handler_errors):
    connection = await connect(
        transport=browser,
        timeout_ms=1000,
        on_handler_error=lambda error, context: handler_errors.append((error, context)),
    )
    yield connection
    await connection.close()


@pytest_asyncio.fixture
async def page_browser() -> FakePageBrowser:
    return FakePageBrowser()


@pytest_asyncio.fixture
async def page_connection(page_browser, handler_errors):
    connection = await connect(
        transport=page_browser,
        timeout_ms=1000,
        on_handler_error=lambda error, context: handler_errors.append((error, context)),
    )
    yield connection
    await connection.close()
