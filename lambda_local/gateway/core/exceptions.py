"""
Custom exception classes.

Represent errors raised while routing, mapping and rendering gateway requests.
Sandbox failures are not exceptions; they are returned as ExecutionResult values.
"""

import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base exception class for the local gateway."""

    error_type = "GatewayError"


class ApiSpecError(GatewayError):
    """Raised when the API definition cannot be loaded or is invalid."""

    error_type = "ApiSpecError"

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"Invalid API definition {source}: {detail}")


class DuplicateRouteError(GatewayError):
    """Raised when a (method, path) pair is registered twice."""

    error_type = "DuplicateRoute"

    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(f"Duplicate route: {method} {path}")


class RouteNotFoundError(GatewayError):
    """Raised when no route matches the request."""

    error_type = "RouteNotFound"

    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(f"No route for {method} {path}")


class HandlerResolutionError(GatewayError):
    """Raised when an integration uri cannot be resolved to handler code."""

    error_type = "HandlerResolutionError"

    def __init__(self, uri: str, detail: str):
        self.uri = uri
        self.detail = detail
        super().__init__(f"Cannot resolve handler for {uri}: {detail}")


class TemplateTokenError(GatewayError):
    """Raised when a single template expression cannot be resolved (recovered per token)."""

    error_type = "TemplateTokenError"


class JsonPathError(TemplateTokenError):
    """Raised for malformed JSON path expressions."""

    error_type = "JsonPathError"


class EventBuildError(GatewayError):
    """Raised when the rendered request template is not valid JSON."""

    error_type = "EventBuildError"

    def __init__(self, detail: str, rendered: str = ""):
        self.detail = detail
        self.rendered = rendered
        super().__init__(f"Request template did not produce valid JSON: {detail}")


class ResponseTemplateError(TemplateTokenError):
    """Raised when a response template token cannot be resolved (recovered per token)."""

    error_type = "ResponseTemplateError"


# ===========================================
# Exception Handlers
# ===========================================


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    error_detail = str(exc)
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error", "detail": error_detail},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for validation errors.
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": "Validation Error", "detail": str(exc.errors())},
    )
