"""
Dependency Injection for Gateway API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..services.processor import GatewayRequestProcessor
from ..services.route_matcher import RouteMatcher


def get_route_matcher(request: Request) -> RouteMatcher:
    return request.app.state.route_matcher


def get_processor(request: Request) -> GatewayRequestProcessor:
    return request.app.state.processor


# Service Dependency Type Aliases
RouteMatcherDep = Annotated[RouteMatcher, Depends(get_route_matcher)]
ProcessorDep = Annotated[GatewayRequestProcessor, Depends(get_processor)]
