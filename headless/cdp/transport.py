"""Text-frame transports for a debugging connection."""

from abc import ABC, abstractmethod
from typing import Optional

import websockets
from websockets.asyncio.client import ClientConnection, connect

from ..core.errors import BrowserNotAvailableError, ConnectionClosedError


class Transport(ABC):
    """
    Ordered, reliable delivery of text frames in both directions.

    Implementations never reorder or coalesce frames. ``recv`` raises
    ConnectionClosedError once no further frames will arrive.
    """

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send one text frame."""

    @abstractmethod
    async def recv(self) -> str:
        """Receive the next text frame."""

    @abstractmethod
    async def close(self) -> None:
        """Close the transport. Safe to call more than once."""


class WebSocketTransport(Transport):
    """Transport over a websocket to a page's debugging endpoint."""

    def __init__(self, url: str, websocket: ClientConnection):
        self.url = url
        self._ws: Optional[ClientConnection] = websocket

    @classmethod
    async def open(cls, url: str) -> 'WebSocketTransport':
        """
        Open a websocket to ``url``.

        Args:
            url: Debugger websocket URL, e.g. ws://localhost:9222/devtools/page/<id>

        Returns:
            Connected transport

        Raises:
            BrowserNotAvailableError: If the websocket cannot be opened
        """
        try:
            # Response bodies easily exceed the default 1 MiB frame limit
            websocket = await connect(url, max_size=None)
        except (OSError, websockets.exceptions.InvalidHandshake) as e:
            raise BrowserNotAvailableError(f"cannot open {url}: {e}") from e
        return cls(url, websocket)

    async def send(self, message: str) -> None:
        if self._ws is None:
            raise ConnectionClosedError("transport closed")
        try:
            await self._ws.send(message)
        except websockets.exceptions.ConnectionClosed as e:
            raise ConnectionClosedError(str(e)) from e

    async def recv(self) -> str:
        if self._ws is None:
            raise ConnectionClosedError("transport closed")
        try:
            message = await self._ws.recv()
        except websockets.exceptions.ConnectionClosed as e:
            raise ConnectionClosedError(str(e)) from e
        if isinstance(message, bytes):
            return message.decode("utf-8")
        return message

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    def __repr__(self) -> str:
        state = "closed" if self._ws is None else "open"
        return f"<WebSocketTransport url={self.url} {state}>"
