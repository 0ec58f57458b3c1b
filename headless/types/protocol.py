"""Wire-level message models for the remote debugging protocol."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Command(BaseModel):
    """An outgoing command: ``{"id": ..., "method": ..., "params": {...}}``."""
    id: int
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> str:
        return self.model_dump_json()


class NetworkRequest(BaseModel):
    """The request object carried by Network.requestWillBeSent and
    Network.requestIntercepted."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str
    method: str
    post_data: Optional[str] = Field(default=None, alias="postData")
    headers: Dict[str, Any] = Field(default_factory=dict)


class NetworkResponse(BaseModel):
    """The response object carried by Network.responseReceived."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: int
    status_text: str = Field(default="", alias="statusText")
    headers: Dict[str, Any] = Field(default_factory=dict)
