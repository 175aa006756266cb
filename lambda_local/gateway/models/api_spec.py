"""
API definition models.

Typed view of the `x-amazon-apigateway-integration` extension carried by each
operation of a Swagger document.
"""

import re
from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_RESPONSE_KEY = "default"


class ResponseDefinition(BaseModel):
    """Integration response selected by a status pattern."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    status_code: int = Field(default=200, alias="statusCode")
    response_templates: Dict[str, str] = Field(default_factory=dict, alias="responseTemplates")
    response_parameters: Dict[str, str] = Field(
        default_factory=dict, alias="responseParameters"
    )

    @field_validator("response_templates", mode="before")
    @classmethod
    def _none_templates_to_empty(cls, value):
        # API definitions commonly declare `"application/json": null`.
        if value is None:
            return {}
        return {key: template or "" for key, template in value.items()}


class IntegrationDefinition(BaseModel):
    """
    Per-route descriptor mapping a request to a handler invocation and the
    handler result back to an HTTP response.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    type: Literal["aws", "aws_proxy", "mock", "http", "http_proxy"] = "aws"
    uri: Optional[str] = None
    request_parameters: Dict[str, str] = Field(default_factory=dict, alias="requestParameters")
    request_templates: Dict[str, str] = Field(default_factory=dict, alias="requestTemplates")
    responses: Dict[str, ResponseDefinition] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator("request_templates", "request_parameters", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        if value is None:
            return {}
        return {key: item or "" for key, item in value.items()}

    @model_validator(mode="before")
    @classmethod
    def _synthesize_default(cls, data):
        # Only a missing `responses` block gets a pass-through default.
        if isinstance(data, dict) and not data.get("responses"):
            data = dict(data)
            data["responses"] = {DEFAULT_RESPONSE_KEY: {"statusCode": 200}}
        return data

    @model_validator(mode="after")
    def _check_responses(self) -> "IntegrationDefinition":
        if DEFAULT_RESPONSE_KEY not in self.responses:
            raise ValueError("responses must declare a 'default' entry")
        for pattern in self.responses:
            if pattern == DEFAULT_RESPONSE_KEY:
                continue
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid response pattern {pattern!r}: {e}") from e
        return self

    @property
    def default_response(self) -> ResponseDefinition:
        return self.responses[DEFAULT_RESPONSE_KEY]

    def response_patterns(self) -> Tuple[Tuple[str, ResponseDefinition], ...]:
        """Declared (pattern, response) pairs in declaration order, without `default`."""
        return tuple(
            (pattern, response)
            for pattern, response in self.responses.items()
            if pattern != DEFAULT_RESPONSE_KEY
        )
