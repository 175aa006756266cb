"""
Core logic package.

Provides the gateway exceptions and handler uri parsing.
"""

from .exceptions import GatewayError
from .handler_uri import HandlerUri, parse_handler_uri

__all__ = [
    "GatewayError",
    "HandlerUri",
    "parse_handler_uri",
]
