"""
Gateway response models.

Standardizes the output of the request pipeline.
"""

from typing import Dict

from pydantic import BaseModel, Field


class MappedResponse(BaseModel):
    """
    Final HTTP response produced by the response mapping stage.

    Used to decouple the internal pipeline from FastAPI Response objects.
    """

    status_code: int
    body: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    content_type: str = "application/json"
    is_base64_encoded: bool = False
