"""Command/reply correlation for a debugging connection."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from ..types.protocol import Command
from ..utils.logger import HeadlessLogger
from .errors import HeadlessError, ProtocolError, TimeoutError


@dataclass
class PendingCommand:
    """A sent command waiting for its reply. The future is assigned once."""
    id: int
    method: str
    params: Dict[str, Any]
    future: asyncio.Future = field(repr=False)


class CommandCorrelator:
    """
    Assigns command ids and matches replies to the commands waiting for them.

    All bookkeeping runs on the event loop thread, and no ``await`` separates
    reading and updating the pending map, so every update is atomic with
    respect to other coroutines on the connection.
    """

    def __init__(
        self,
        send: Callable[[str], Awaitable[None]],
        logger: HeadlessLogger,
        timeout_ms: int = 10000,
    ):
        """
        Initialize the correlator.

        Args:
            send: Coroutine function delivering one text frame to the transport
            logger: Logger instance
            timeout_ms: Default reply timeout for every command
        """
        self._send = send
        self._logger = logger
        self.timeout_ms = timeout_ms
        self._last_id = 0
        self._pending: Dict[int, PendingCommand] = {}
        self._closed: Optional[HeadlessError] = None

    @property
    def last_id(self) -> int:
        """Id of the most recently sent command (0 before the first)."""
        return self._last_id

    @property
    def pending(self) -> Dict[int, PendingCommand]:
        """Commands still waiting for a reply, keyed by id."""
        return self._pending

    async def execute(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        timeout_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Send a command and wait for its reply.

        Args:
            method: Protocol method, e.g. 'DOM.getDocument'
            params: Method parameters
            timeout_ms: Overrides the default timeout for this call only

        Returns:
            The ``result`` of the reply

        Raises:
            TimeoutError: If no reply arrives in time
            ProtocolError: If the reply carries an error
            ConnectionClosedError: If the connection is closed
        """
        if self._closed is not None:
            raise self._closed

        params = params or {}
        if timeout_ms is None:
            timeout_ms = self.timeout_ms

        self._last_id += 1
        command_id = self._last_id
        pending = PendingCommand(
            command_id, method, params, asyncio.get_running_loop().create_future()
        )
        # Registered before sending so a fast reply always finds its slot
        self._pending[command_id] = pending

        self._logger.debug(
            "connection:execute",
            "Sending command",
            id=command_id,
            method=method,
        )

        try:
            await self._send(Command(id=command_id, method=method, params=params).to_wire())
            reply = await asyncio.wait_for(pending.future, timeout_ms / 1000)
        except asyncio.TimeoutError:
            self._logger.warn(
                "connection:execute",
                "Command timed out",
                id=command_id,
                method=method,
                timeout_ms=timeout_ms,
            )
            raise TimeoutError(method, timeout_ms) from None
        finally:
            self._pending.pop(command_id, None)

        if "error" in reply:
            raise ProtocolError(method, params, reply["error"])
        return reply.get("result", {})

    def resolve(self, reply: Dict[str, Any]) -> bool:
        """
        Fulfil the command matching ``reply["id"]``.

        Returns:
            False when no command is waiting for that id (e.g. it timed out)
        """
        pending = self._pending.pop(reply["id"], None)
        if pending is None or pending.future.done():
            self._logger.debug(
                "connection:reply",
                "Dropping reply without pending command",
                id=reply["id"],
            )
            return False

        pending.future.set_result(reply)
        return True

    def fail_all(self, error: HeadlessError) -> None:
        """Fail every pending command and refuse new ones with the first error."""
        if self._closed is None:
            self._closed = error
        pending, self._pending = self._pending, {}
        for command in pending.values():
            if not command.future.done():
                command.future.set_exception(error)
        if pending:
            self._logger.info(
                "connection:close",
                "Failed pending commands",
                count=len(pending),
                reason=error.message,
            )
