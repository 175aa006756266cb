"""
Where: lambda_local/gateway/exceptions.py
What: Gateway exception handler registration and custom HTTP mappings.
Why: Keep error handling setup isolated from route and lifecycle concerns.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import (
    EventBuildError,
    HandlerResolutionError,
    RouteNotFoundError,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)

logger = logging.getLogger("gateway.exceptions")


async def route_not_found_handler(request: Request, exc: RouteNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"message": "Not Found", "errorType": exc.error_type},
    )


async def event_build_error_handler(request: Request, exc: EventBuildError):
    logger.error(
        str(exc),
        extra={"path": request.url.path, "rendered": exc.rendered[:500]},
    )
    return JSONResponse(
        status_code=500,
        content={"message": str(exc), "errorType": exc.error_type},
    )


async def handler_resolution_error_handler(request: Request, exc: HandlerResolutionError):
    logger.error(str(exc), extra={"path": request.url.path, "uri": exc.uri})
    return JSONResponse(
        status_code=502,
        content={"message": str(exc), "errorType": exc.error_type},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RouteNotFoundError, route_not_found_handler)
    app.add_exception_handler(EventBuildError, event_build_error_handler)
    app.add_exception_handler(HandlerResolutionError, handler_resolution_error_handler)
