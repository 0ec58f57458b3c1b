"""HTTP discovery endpoints of a browser's remote debugging port."""

from typing import Any, Dict, List

import httpx

from ..core.errors import BrowserNotAvailableError

DISCOVERY_TIMEOUT_S = 5.0


def page_ws_url(host: str, port: int, page_id: str) -> str:
    """Websocket URL of the debugging endpoint for ``page_id``."""
    return f"ws://{host}:{port}/devtools/page/{page_id}"


async def _request(method: str, host: str, port: int, path: str) -> Any:
    url = f"http://{host}:{port}{path}"
    try:
        async with httpx.AsyncClient(timeout=DISCOVERY_TIMEOUT_S) as client:
            response = await client.request(method, url)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as e:
        raise BrowserNotAvailableError(f"{method} {url} failed: {e}") from e


async def open_page(host: str, port: int) -> str:
    """Open a new page (~= tab) and return its id."""
    # Recent browsers reject GET on /json/new
    target = await _request("PUT", host, port, "/json/new")
    return target["id"]


async def list_pages(host: str, port: int) -> List[Dict[str, Any]]:
    """Return the page targets currently open in the browser."""
    targets = await _request("GET", host, port, "/json/list")
    return [target for target in targets if target.get("type") == "page"]


async def browser_version(host: str, port: int) -> Dict[str, Any]:
    """Return browser and protocol version information."""
    return await _request("GET", host, port, "/json/version")
