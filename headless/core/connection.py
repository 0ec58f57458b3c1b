"""Connection to one page's remote debugging endpoint."""

import asyncio
from typing import Any, Callable, Dict, Optional

from ..cdp.targets import open_page, page_ws_url
from ..cdp.transport import Transport, WebSocketTransport
from ..types.config import ConnectionOptions, build_options
from ..utils.logger import HeadlessLogger
from .commands import CommandCorrelator, PendingCommand
from .dispatcher import Dispatcher
from .errors import ConnectionClosedError, HeadlessError, MalformedMessageError
from .events import Deregistration, EventHandler, EventSubscriptions

HandlerErrorCallback = Callable[[BaseException, Dict[str, Any]], None]


class Connection:
    """
    Session root for one page.

    Ties a transport to the command correlator, the event subscriptions and
    the dispatcher, and carries ``properties``: session-scoped state shared by
    extensions such as the response cache.

    Exceptions raised by event handlers are passed to ``on_handler_error``.
    Without a callback they are logged and forwarded to the event loop's
    exception handler.
    """

    def __init__(
        self,
        transport: Transport,
        options: Optional[ConnectionOptions] = None,
        logger: Optional[HeadlessLogger] = None,
        on_handler_error: Optional[HandlerErrorCallback] = None,
    ):
        self.transport = transport
        self.options = options or ConnectionOptions()
        self.logger = logger or HeadlessLogger.for_verbosity(self.options.verbose)
        self._logger = self.logger.child(component="connection")
        self.properties: Dict[str, Any] = {}
        self._on_handler_error = on_handler_error

        self._commands = CommandCorrelator(self.transport.send, self._logger, self.options.timeout_ms)
        self.events = EventSubscriptions(self.execute, self.logger.child(component="events"))
        self._dispatcher = Dispatcher(
            self.transport,
            self._commands,
            self.events,
            self._report_handler_error,
            self.logger.child(component="dispatcher"),
        )
        self._reader: Optional[asyncio.Task] = None
        self._error: Optional[HeadlessError] = None
        self._closed = asyncio.Event()

    @property
    def command_id(self) -> int:
        """Id of the last command sent on this connection."""
        return self._commands.last_id

    @property
    def pending(self) -> Dict[int, PendingCommand]:
        return self._commands.pending

    @property
    def event_handlers(self):
        return self.events.registry

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def error(self) -> Optional[HeadlessError]:
        """The error that terminated frame processing, if any."""
        return self._error

    def start(self) -> None:
        """Start consuming inbound frames."""
        if self._reader is None:
            self._reader = asyncio.create_task(self._read_loop())

    async def execute(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        timeout_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Execute a protocol command and return its result.

        Args:
            method: Protocol method, e.g. 'Page.navigate'
            params: Method parameters
            timeout_ms: Overrides ``options.timeout_ms`` for this call

        Raises:
            TimeoutError: If no reply arrives in time
            ProtocolError: If the remote side answers with an error
            ConnectionClosedError: If the connection is closed
        """
        return await self._commands.execute(method, params, timeout_ms)

    async def register_event_handler(self, event_name: str, handler: EventHandler) -> Deregistration:
        """
        Call ``handler`` with the params of every ``event_name`` event.

        Returns:
            Awaitable that removes the handler again
        """
        return await self.events.register(event_name, handler)

    async def _read_loop(self) -> None:
        try:
            await self._dispatcher.run()
        except ConnectionClosedError as e:
            self._logger.info("connection:read", "Transport closed", reason=e.message)
            self._terminate(e)
        except MalformedMessageError as e:
            self._logger.error("connection:read", "Malformed message, stopping", frame=repr(e.frame))
            self._terminate(e)
        except asyncio.CancelledError:
            self._terminate(ConnectionClosedError("connection closed"))
            raise
        except Exception as e:
            self._logger.error("connection:read", "Reader failed", error=str(e))
            self._terminate(ConnectionClosedError(f"reader failed: {e}"))
            raise

    def _terminate(self, error: HeadlessError) -> None:
        if self._error is None and not isinstance(error, ConnectionClosedError):
            self._error = error
        self._commands.fail_all(error)
        self._closed.set()

    def _report_handler_error(self, error: BaseException, context: Dict[str, Any]) -> None:
        if self._on_handler_error is not None:
            self._on_handler_error(error, context)
            return

        self._logger.error(
            "connection:handler",
            "Event handler failed",
            event_name=context.get("event"),
            error=str(error),
        )
        asyncio.get_running_loop().call_exception_handler({
            "message": f"Event handler for {context.get('event')} failed",
            "exception": error,
            **context,
        })

    async def wait_closed(self) -> None:
        """
        Wait until frame processing stops.

        Raises:
            MalformedMessageError: If a malformed frame terminated the connection
        """
        await self._closed.wait()
        if self._error is not None:
            raise self._error

    async def close(self) -> None:
        """Stop processing frames, close the transport and fail pending commands."""
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        self._terminate(ConnectionClosedError("connection closed"))
        await self._dispatcher.cancel_handlers()
        await self.transport.close()
        self._logger.info("connection:close", "Connection closed")

    async def __aenter__(self) -> 'Connection':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Connection {state} commands={self.command_id} pending={len(self.pending)}>"


async def connect(
    options: Optional[ConnectionOptions] = None,
    *,
    transport: Optional[Transport] = None,
    on_handler_error: Optional[HandlerErrorCallback] = None,
    **overrides: Any,
) -> Connection:
    """
    Open a connection to a page.

    Opens a new page when no ``page_id`` is configured. Keyword overrides are
    applied on top of ``options``, e.g. ``connect(port=9333, timeout_ms=2000)``.

    Args:
        options: Connection options (defaults to ConnectionOptions())
        transport: Already opened transport; skips page discovery when given
        on_handler_error: Receives exceptions raised by event handlers
        **overrides: Individual ConnectionOptions fields

    Returns:
        Started connection with the default event handlers registered

    Raises:
        BrowserNotAvailableError: If the browser cannot be reached
        ConfigurationError: If the options are invalid
    """
    # Imported here to avoid circular dependency
    from .page import register_default_event_handlers

    base = options.model_dump() if options is not None else {}
    options = build_options(ConnectionOptions, **{**base, **overrides})
    logger = HeadlessLogger.for_verbosity(options.verbose)

    if transport is None:
        page_id = options.page_id or await open_page(options.host, options.port)
        url = page_ws_url(options.host, options.port, page_id)
        logger.info("connection:connect", "Connecting to page", url=url)
        transport = await WebSocketTransport.open(url)

    connection = Connection(transport, options, logger, on_handler_error)
    connection.start()
    try:
        await register_default_event_handlers(connection)
    except BaseException:
        await connection.close()
        raise
    return connection
