"""
Local API Gateway - API Gateway compatible server

Routes requests declared in a Swagger API definition to local Python handlers,
mapping requests and responses through the integration templates.
"""

import asyncio
import base64
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response

from lambda_local.common.core.logging_config import setup_logging

from .api.deps import ProcessorDep, RouteMatcherDep
from .config import GatewayConfig, config
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import request_id_middleware
from .models import InputContext, MappedResponse

logger = logging.getLogger("gateway.main")

HEALTH_PATH = "/_local/health"
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
DISCONNECT_POLL_INTERVAL = 0.1
CLIENT_CLOSED_REQUEST = 499


async def build_input_context(request: Request) -> InputContext:
    """Translate a FastAPI Request into the pipeline's InputContext."""
    multi_headers: Dict[str, List[str]] = {}
    for key, value in request.headers.items():
        multi_headers.setdefault(key.lower(), []).append(value)

    multi_query_params = {
        key: request.query_params.getlist(key) for key in request.query_params.keys()
    }

    return InputContext(
        method=request.method,
        path=request.url.path,
        headers={key: values[-1] for key, values in multi_headers.items()},
        multi_headers=multi_headers,
        query_params={key: values[-1] for key, values in multi_query_params.items()},
        multi_query_params=multi_query_params,
        body=await request.body(),
        source_ip=request.client.host if request.client else "127.0.0.1",
    )


def to_http_response(mapped: MappedResponse) -> Response:
    content = mapped.body.encode("utf-8")
    if mapped.is_base64_encoded:
        content = base64.b64decode(mapped.body)
    return Response(
        content=content,
        status_code=mapped.status_code,
        headers=mapped.headers,
        media_type=mapped.content_type,
    )


async def run_until_disconnect(request: Request, coro) -> Optional[MappedResponse]:
    """
    Await `coro`, cancelling it when the client goes away.

    Returns None when the client disconnected first.
    """
    task = asyncio.ensure_future(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info(f"Client disconnected, aborting {request.method} {request.url.path}")
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                return None
    finally:
        if not task.done():
            task.cancel()


def create_app(gateway_config: GatewayConfig = config) -> FastAPI:
    def lifespan(app: FastAPI):
        return manage_lifespan(app, gateway_config)

    app = FastAPI(title="Local API Gateway", version="1.0.0", lifespan=lifespan)
    app.middleware("http")(request_id_middleware)
    register_exception_handlers(app)

    @app.get(HEALTH_PATH)
    async def health_check(route_matcher: RouteMatcherDep):
        """Health check endpoint."""
        spec = route_matcher.spec
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "routes": len(spec.routes) if spec else 0,
        }

    @app.api_route("/{path:path}", methods=ALL_METHODS)
    async def gateway_handler(request: Request, path: str, processor: ProcessorDep):
        """
        Catch-all route: dispatch to the integration declared for the path.
        """
        context = await build_input_context(request)
        mapped = await run_until_disconnect(request, processor.process_request(context))
        if mapped is None:
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        return to_http_response(mapped)

    return app


setup_logging(config.LOG_CONFIG_PATH, config.LOG_LEVEL)
app = create_app(config)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.BIND_HOST, port=config.BIND_PORT)
