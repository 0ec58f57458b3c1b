"""Routing of inbound frames to pending commands and event handlers."""

import asyncio
import inspect
import json
from typing import Any, Callable, Dict, Set

from ..cdp.transport import Transport
from ..utils.logger import HeadlessLogger
from .commands import CommandCorrelator
from .errors import MalformedMessageError
from .events import EventHandler, EventSubscriptions

ErrorReporter = Callable[[BaseException, Dict[str, Any]], None]


class Dispatcher:
    """
    Single consumer of a connection's inbound frames.

    Frames are consumed strictly in arrival order. Replies are handed to the
    correlator right away. Every event handler invocation runs in its own
    task, so a handler may ``await`` commands whose replies this very loop
    still has to consume. Handler completion order is not guaranteed.
    """

    def __init__(
        self,
        transport: Transport,
        commands: CommandCorrelator,
        subscriptions: EventSubscriptions,
        report_error: ErrorReporter,
        logger: HeadlessLogger,
    ):
        self._transport = transport
        self._commands = commands
        self._subscriptions = subscriptions
        self._report_error = report_error
        self._logger = logger
        self._handler_tasks: Set[asyncio.Task] = set()

    @property
    def running_handlers(self) -> int:
        return len(self._handler_tasks)

    async def run(self) -> None:
        """
        Consume frames until the transport closes.

        Raises:
            ConnectionClosedError: When the transport stops delivering frames
            MalformedMessageError: On a frame that is neither reply nor event
        """
        while True:
            raw = await self._transport.recv()
            self.dispatch(decode(raw))

    def dispatch(self, frame: Any) -> None:
        """Route one decoded frame."""
        if not isinstance(frame, dict):
            raise MalformedMessageError(frame)

        if "method" in frame:
            self._emit(frame["method"], frame.get("params", {}))
        elif "id" in frame:
            self._commands.resolve(frame)
        else:
            raise MalformedMessageError(frame)

    def _emit(self, event_name: str, params: Dict[str, Any]) -> None:
        handlers = self._subscriptions.handlers(event_name)
        if not handlers:
            return

        self._logger.debug(
            "dispatcher:event",
            "Dispatching event",
            event_name=event_name,
            handlers=len(handlers),
        )
        for handler in handlers:
            task = asyncio.create_task(self._invoke(event_name, handler, params))
            self._handler_tasks.add(task)
            task.add_done_callback(self._handler_tasks.discard)

    async def _invoke(self, event_name: str, handler: EventHandler, params: Dict[str, Any]) -> None:
        try:
            result = handler(params)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._report_error(e, {"event": event_name, "handler": handler})

    async def cancel_handlers(self) -> None:
        """Cancel handler invocations that are still running."""
        current = asyncio.current_task()
        tasks = [task for task in self._handler_tasks if task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


def decode(raw: str) -> Any:
    """Decode one text frame, treating invalid JSON as a malformed message."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        raise MalformedMessageError(raw) from None
