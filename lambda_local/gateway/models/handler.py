"""
Handler domain models.

Defines the resolved location and limits of a handler as a Pydantic model.
"""

from typing import Dict

from pydantic import BaseModel, Field


class HandlerTarget(BaseModel):
    """
    Core domain entity for a handler.

    Represents the unified configuration after descriptor defaults are merged.
    """

    name: str
    handler_path: str
    function_name: str = "lambda_handler"
    memory_size: int = 1024
    timeout_ms: int = 6000
    environment: Dict[str, str] = Field(default_factory=dict)
