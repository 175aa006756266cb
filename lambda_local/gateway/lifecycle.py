"""
Where: lambda_local/gateway/lifecycle.py
What: Gateway startup/shutdown orchestration for shared resources.
Why: Keep main.py focused on app assembly while preserving lifecycle behavior.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from lambda_local.sandbox import ExecutionSandbox

from .config import GatewayConfig
from .services.config_reloader import ApiSpecReloader
from .services.handler_registry import HandlerRegistry
from .services.integration_mapper import IntegrationMapper
from .services.lambda_invoker import LambdaInvoker
from .services.processor import GatewayRequestProcessor
from .services.response_mapper import ResponseMapper
from .services.route_matcher import RouteMatcher

logger = logging.getLogger("gateway.main")


def build_processor(
    gateway_config: GatewayConfig, route_matcher: RouteMatcher
) -> GatewayRequestProcessor:
    registry = HandlerRegistry(
        gateway_config.FUNCTIONS_ROOT,
        default_timeout=gateway_config.DEFAULT_TIMEOUT_SECONDS,
        default_memory_size=gateway_config.DEFAULT_MEMORY_SIZE,
        timeout_override=gateway_config.TIMEOUT_OVERRIDE_SECONDS,
    )
    invoker = LambdaInvoker(
        registry=registry,
        sandbox=ExecutionSandbox(python=gateway_config.SANDBOX_PYTHON),
        config=gateway_config,
    )
    return GatewayRequestProcessor(
        route_matcher=route_matcher,
        integration_mapper=IntegrationMapper(
            stage=gateway_config.STAGE,
            api_id=gateway_config.API_ID,
            stage_variables=gateway_config.STAGE_VARIABLES,
        ),
        invoker=invoker,
        response_mapper=ResponseMapper(stage_variables=gateway_config.STAGE_VARIABLES),
    )


@asynccontextmanager
async def manage_lifespan(app: FastAPI, gateway_config: GatewayConfig) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    reloader: Optional[ApiSpecReloader] = None

    try:
        route_matcher = RouteMatcher(gateway_config.API_SPEC_PATH)
        route_matcher.load_api_spec()

        reloader = ApiSpecReloader(
            gateway_config.API_SPEC_PATH,
            route_matcher.reload,
            interval=gateway_config.CONFIG_RELOAD_INTERVAL,
            enabled=gateway_config.CONFIG_RELOAD_ENABLED,
        )
        reloader.start()

        app.state.config = gateway_config
        app.state.config_reloader = reloader
        app.state.route_matcher = route_matcher
        app.state.processor = build_processor(gateway_config, route_matcher)

        logger.info(
            f"Gateway listening on {gateway_config.base_url} (stage={gateway_config.STAGE})"
        )
        yield
    finally:
        if reloader:
            reloader.stop()
        logger.info("Gateway shutting down.")
