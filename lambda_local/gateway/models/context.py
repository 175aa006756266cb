"""
Input context models.

Encapsulates all data required to process a gateway request.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class InputContext(BaseModel):
    """
    Rich context representing an incoming request.

    This model decouples the service layer from FastAPI's Request object.
    Header names are lower-cased.
    """

    method: str
    path: str
    headers: Dict[str, str] = Field(default_factory=dict)
    multi_headers: Dict[str, List[str]] = Field(default_factory=dict)
    query_params: Dict[str, str] = Field(default_factory=dict)
    multi_query_params: Dict[str, List[str]] = Field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = Field(default_factory=dict)
    route_path: str = ""
    source_ip: str = "127.0.0.1"

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def accept(self) -> str:
        return self.headers.get("accept", "")


class MappedEvent(BaseModel):
    """Handler event plus the request context produced by the integration stage."""

    event: Any = None
    context: Dict[str, Any] = Field(default_factory=dict)
