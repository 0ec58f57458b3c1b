"""Launch a local browser with remote debugging enabled."""

import asyncio
import contextlib
import time
from typing import AsyncIterator, Optional

from ..types.config import BrowserOptions
from ..utils.logger import HeadlessLogger
from .errors import BrowserNotAvailableError

POLL_INTERVAL_S = 0.01
STOP_TIMEOUT_S = 5.0


async def port_open(host: str, port: int) -> bool:
    """Whether something accepts TCP connections on ``host``:``port``."""
    try:
        _, writer = await asyncio.open_connection(host, port)
    except OSError:
        return False
    writer.close()
    with contextlib.suppress(OSError):
        await writer.wait_closed()
    return True


async def wait_until_ready(port: int, timeout_ms: int, host: str = "localhost") -> None:
    """
    Poll the debugging port until it accepts connections.

    Raises:
        BrowserNotAvailableError: If the port is still closed after ``timeout_ms``
    """
    deadline = time.monotonic() + timeout_ms / 1000
    while not await port_open(host, port):
        if time.monotonic() >= deadline:
            raise BrowserNotAvailableError(
                f"port {port} not ready after {timeout_ms}ms"
            )
        await asyncio.sleep(POLL_INTERVAL_S)


@contextlib.asynccontextmanager
async def launch_browser(
    options: Optional[BrowserOptions] = None,
    logger: Optional[HeadlessLogger] = None,
) -> AsyncIterator[asyncio.subprocess.Process]:
    """
    Run a browser for the duration of the ``async with`` block.

    Example:
        async with launch_browser(BrowserOptions(port=9333)):
            connection = await connect(port=9333)

    Raises:
        BrowserNotAvailableError: If the executable cannot be started or its
            debugging port does not open in time
    """
    options = options or BrowserOptions()
    logger = logger or HeadlessLogger.for_verbosity()
    argv = options.command()

    logger.info("browser:launch", "Starting browser", argv=argv)
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        raise BrowserNotAvailableError(f"cannot start {options.executable}: {e}") from e

    try:
        await wait_until_ready(options.port, options.ready_timeout_ms)
        logger.info("browser:launch", "Browser ready", pid=process.pid, port=options.port)
        yield process
    finally:
        if process.returncode is None:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), STOP_TIMEOUT_S)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
        logger.info("browser:close", "Browser stopped", pid=process.pid)
