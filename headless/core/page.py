"""Page helpers built on top of a Connection."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, TYPE_CHECKING

from .errors import EvaluationError, TimeoutError

if TYPE_CHECKING:
    from .connection import Connection

ROOT_NODE_ID = "root_node_id"
FRAME_STOPPED_LOADING = "Page.frameStoppedLoading"


async def register_default_event_handlers(connection: 'Connection') -> None:
    """
    Register handlers every connection needs.

    Whenever a frame stops loading, node ids obtained from the old document
    become invalid, so the cached document root is dropped and fetched again
    on next use.
    """
    def forget_root_node(params: Dict[str, Any]) -> None:
        connection.properties.pop(ROOT_NODE_ID, None)

    await connection.register_event_handler(FRAME_STOPPED_LOADING, forget_root_node)


class Page:
    """
    Convenience helpers for navigating and querying a page.

    Each helper is a short sequence of protocol commands on ``connection``.
    Node ids are only valid until the next navigation.
    """

    def __init__(self, connection: 'Connection'):
        self.connection = connection
        self._logger = connection.logger.child(component="page")

    async def _execute(self, method: str, **params: Any) -> Dict[str, Any]:
        return await self.connection.execute(method, params)

    @asynccontextmanager
    async def await_event(
        self,
        event_name: str,
        timeout_ms: Optional[int] = None,
    ) -> AsyncIterator[asyncio.Future]:
        """
        Run the body, then wait for the next ``event_name`` event.

        The handler is registered before the body runs, so an event caused by
        the body is never missed.

        Example:
            async with page.await_event("Page.loadEventFired") as fired:
                await page.connection.execute("Page.reload")
            params = fired.result()
        """
        fired = asyncio.get_running_loop().create_future()

        def on_event(params: Dict[str, Any]) -> None:
            if not fired.done():
                fired.set_result(params)

        deregister = await self.connection.register_event_handler(event_name, on_event)
        try:
            yield fired
            if timeout_ms is None:
                timeout_ms = self.connection.options.timeout_ms
            try:
                await asyncio.wait_for(asyncio.shield(fired), timeout_ms / 1000)
            except asyncio.TimeoutError:
                raise TimeoutError(event_name, timeout_ms) from None
        finally:
            await deregister()

    async def visit(self, url: str) -> Dict[str, Any]:
        """Navigate to ``url`` and wait for the page to stop loading."""
        self._logger.info("page:visit", "Visiting page", url=url)
        async with self.await_event(FRAME_STOPPED_LOADING):
            result = await self._execute("Page.navigate", url=url)
        self.connection.properties.pop(ROOT_NODE_ID, None)
        return result

    async def root_node_id(self) -> int:
        """Node id of the current document root."""
        node_id = self.connection.properties.get(ROOT_NODE_ID)
        if node_id is None:
            document = await self._execute("DOM.getDocument")
            node_id = document["root"]["nodeId"]
            self.connection.properties[ROOT_NODE_ID] = node_id
        return node_id

    async def select_one(self, selector: str, node_id: Optional[int] = None) -> Optional[int]:
        """
        Select the first element matching css ``selector``.

        Args:
            selector: CSS selector
            node_id: Limit the search to children of this node (default: document root)

        Returns:
            Node id, or None when nothing matches
        """
        if node_id is None:
            node_id = await self.root_node_id()
        result = await self._execute("DOM.querySelector", nodeId=node_id, selector=selector)
        found = result.get("nodeId", 0)
        return found or None

    async def select(self, selector: str, node_id: Optional[int] = None) -> List[int]:
        """Select all elements matching css ``selector``. Returns node ids."""
        if node_id is None:
            node_id = await self.root_node_id()
        result = await self._execute("DOM.querySelectorAll", nodeId=node_id, selector=selector)
        return result.get("nodeIds", [])

    async def evaluate(self, node_id: int, function: str) -> Any:
        """
        Evaluate ``function`` with the node bound to ``this``.

        Example ``function``: "function() { return this.innerText; }"

        Raises:
            EvaluationError: If the function throws in the page
        """
        resolved = await self._execute("DOM.resolveNode", nodeId=node_id)
        result = await self._execute(
            "Runtime.callFunctionOn",
            objectId=resolved["object"]["objectId"],
            functionDeclaration=function,
            returnByValue=True,
        )
        if result.get("exceptionDetails"):
            raise EvaluationError(function, result["exceptionDetails"])
        return result.get("result", {}).get("value")

    async def html(self, node_id: int) -> str:
        """Outer html of the node."""
        # DOM.getOuterHTML is unreliable for some elements (e.g. title)
        return await self.evaluate(node_id, "function() { return this.outerHTML; }")

    async def text(self, node_id: int) -> str:
        """Inner text of the node."""
        return await self.evaluate(node_id, "function() { return this.innerText; }")

    async def attributes(self, node_id: int) -> Dict[str, str]:
        """Attributes of the node as a dict."""
        result = await self._execute("DOM.getAttributes", nodeId=node_id)
        flat = result.get("attributes", [])
        return dict(zip(flat[::2], flat[1::2]))

    async def attribute(self, name: str, node_id: int) -> Optional[str]:
        return (await self.attributes(node_id)).get(name)

    async def click(self, node_id: int) -> None:
        """Scroll the node into view and click it."""
        await self.evaluate(
            node_id,
            "function() { this.scrollIntoViewIfNeeded(); this.click(); }",
        )

    async def click_visit(self, node_id: int) -> None:
        """Like click, but wait for the resulting navigation like visit."""
        async with self.await_event(FRAME_STOPPED_LOADING):
            await self.click(node_id)
        self.connection.properties.pop(ROOT_NODE_ID, None)
