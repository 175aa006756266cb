"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .api_spec import IntegrationDefinition, ResponseDefinition
from .aws_v1 import APIGatewayProxyEvent, APIGatewayProxyResponse
from .context import InputContext, MappedEvent
from .handler import HandlerTarget
from .response import MappedResponse

__all__ = [
    "IntegrationDefinition",
    "ResponseDefinition",
    "APIGatewayProxyEvent",
    "APIGatewayProxyResponse",
    "InputContext",
    "MappedEvent",
    "HandlerTarget",
    "MappedResponse",
]
