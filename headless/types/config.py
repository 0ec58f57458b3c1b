"""Configuration models for connections, the browser launcher and the cache."""

import os
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError

from ..core.errors import ConfigurationError


class ConnectionOptions(BaseModel):
    """Where to connect and how long to wait for command replies.

    ``timeout_ms`` is the default for every ``execute`` call made on the
    connection; a call may pass its own ``timeout_ms`` to override it.
    """
    host: str = "localhost"
    port: int = Field(default=9222, gt=0, lt=65536)
    page_id: Optional[str] = None
    timeout_ms: int = Field(default=10000, gt=0)
    verbose: int = Field(default=0, ge=0, le=3)

    @classmethod
    def from_env(cls, **overrides: Any) -> 'ConnectionOptions':
        """Build options from ``HEADLESS_*`` environment variables."""
        values: dict = {}
        env_map = {
            "host": "HEADLESS_HOST",
            "port": "HEADLESS_PORT",
            "page_id": "HEADLESS_PAGE_ID",
            "timeout_ms": "HEADLESS_TIMEOUT_MS",
        }
        for field, env_var in env_map.items():
            value = os.getenv(env_var)
            if value:
                values[field] = value
        values.update(overrides)
        return build_options(cls, **values)


class BrowserOptions(BaseModel):
    """Arguments used to launch a browser with remote debugging enabled."""
    executable: str = "chromium-browser"
    port: int = Field(default=9222, gt=0, lt=65536)
    headless: bool = True
    args: List[str] = Field(default_factory=list)
    ready_timeout_ms: int = Field(default=10000, gt=0)

    def command(self) -> List[str]:
        """Full argv for the browser process."""
        argv = [self.executable, f"--remote-debugging-port={self.port}"]
        if self.headless:
            argv += ["--headless", "--disable-gpu"]
        return argv + list(self.args)


class CacheOptions(BaseModel):
    """Capacities of the response cache tables."""
    # Request keys and response heads only need to outlive one request
    max_concurrent_requests: int = Field(default=100, gt=0)
    max_responses: int = Field(default=500, gt=0)


def build_options(model: type, **values: Any) -> Any:
    """Validate ``values`` into ``model``, raising ConfigurationError on failure."""
    try:
        return model(**values)
    except ValidationError as e:
        raise ConfigurationError(str(e))
