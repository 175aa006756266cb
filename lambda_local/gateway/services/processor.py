"""
Gateway Request Processor - Service Layer

Standardizes the flow: InputContext -> RouteMatch -> MappedEvent ->
ExecutionResult -> MappedResponse.
"""

import logging

from lambda_local.sandbox import ExecutionResult

from ..models.context import InputContext
from ..models.response import MappedResponse
from .integration_mapper import IntegrationMapper
from .lambda_invoker import LambdaInvoker
from .response_mapper import ResponseMapper, error_response
from .route_matcher import RouteMatcher

logger = logging.getLogger("gateway.processor")

UNSUPPORTED_TYPES = ("http", "http_proxy")


class GatewayRequestProcessor:
    """
    Orchestrates the request processing lifecycle.

    Route matching and mapping are synchronous; the only suspension point is
    the sandbox execution. Gateway errors (RouteNotFoundError, EventBuildError,
    HandlerResolutionError) propagate to the registered exception handlers.
    """

    def __init__(
        self,
        route_matcher: RouteMatcher,
        integration_mapper: IntegrationMapper,
        invoker: LambdaInvoker,
        response_mapper: ResponseMapper,
    ):
        self.route_matcher = route_matcher
        self.integration_mapper = integration_mapper
        self.invoker = invoker
        self.response_mapper = response_mapper

    async def process_request(self, request: InputContext) -> MappedResponse:
        match = self.route_matcher.match_route(request.method, request.path)
        request = request.model_copy(
            update={"path_params": match.path_params, "route_path": match.route.path}
        )
        integration = match.integration
        logger.info(
            f"Processing request for {match.route.method} {match.route.path} "
            f"({request.method} {request.path})"
        )

        if integration.type in UNSUPPORTED_TYPES:
            return error_response(
                501,
                f"Integration type '{integration.type}' is not supported",
                "UnsupportedIntegration",
            )

        mapped = self.integration_mapper.build(request, integration)

        if integration.type == "mock":
            result = ExecutionResult.succeeded({})
        else:
            result = await self.invoker.invoke_uri(integration.uri, mapped.event, mapped.context)

        return self.response_mapper.render(result, integration, mapped.context, request.accept)
