"""
Services package.

Provides routing, mapping and invocation logic.
"""

from .handler_registry import HandlerRegistry
from .integration_mapper import IntegrationMapper
from .response_mapper import ResponseMapper
from .route_matcher import RouteMatcher
from .route_table import RouteTable

__all__ = [
    "HandlerRegistry",
    "IntegrationMapper",
    "ResponseMapper",
    "RouteMatcher",
    "RouteTable",
]
