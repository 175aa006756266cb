"""
Lambda Invoker Service

Resolves the handler behind an integration uri, assembles its environment and
runs it in the ExecutionSandbox.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional

from lambda_local.sandbox import ExecutionRequest, ExecutionResult, ExecutionSandbox

from ..config import GatewayConfig
from ..models.handler import HandlerTarget
from .handler_registry import HandlerRegistry

logger = logging.getLogger("gateway.lambda_invoker")

INHERITED_VARIABLES = ("HOME", "PATH", "USER")
ACCOUNT_ID = "000000000000"


def build_environment(
    config: GatewayConfig,
    target: HandlerTarget,
    parent: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Environment for a handler process.

    Precedence (lowest first): inherited variables, gateway defaults, the
    configured sandbox environment, the handler descriptor, runtime variables.
    """
    parent = os.environ if parent is None else parent
    if config.MIRROR_ENVIRONMENT:
        env = dict(parent)
    else:
        env = {key: parent[key] for key in INHERITED_VARIABLES if key in parent}

    env.update(
        {
            "BASE_URL": config.base_url,
            "AWS_REGION": config.AWS_REGION,
            "AWS_STAGE": config.STAGE,
            "AWS_PROJECT_NAME": config.PROJECT_NAME,
        }
    )
    env.update(config.SANDBOX_ENVIRONMENT)
    env.update(target.environment)
    env.update(
        {
            "PYTHONUNBUFFERED": "1",
            "AWS_LAMBDA_FUNCTION_NAME": target.name,
            "AWS_LAMBDA_FUNCTION_MEMORY_SIZE": str(target.memory_size),
            "AWS_LAMBDA_FUNCTION_VERSION": "$LATEST",
        }
    )
    return env


class LambdaInvoker:
    def __init__(
        self,
        registry: HandlerRegistry,
        sandbox: ExecutionSandbox,
        config: GatewayConfig,
    ):
        """
        Args:
            registry: HandlerRegistry instance
            sandbox: ExecutionSandbox instance
            config: GatewayConfig instance
        """
        self.registry = registry
        self.sandbox = sandbox
        self.config = config

    async def invoke_uri(
        self, uri: Optional[str], event: Any, context: Dict[str, Any]
    ) -> ExecutionResult:
        """
        Raises:
            HandlerResolutionError: the uri does not resolve to handler code
        """
        target = self.registry.resolve(uri)
        return await self.invoke(target, event, context)

    async def invoke(
        self, target: HandlerTarget, event: Any, context: Dict[str, Any]
    ) -> ExecutionResult:
        request_id = context.get("requestId")
        handler_context = dict(context)
        handler_context.update(
            {
                "functionName": target.name,
                "awsRequestId": request_id,
                "memoryLimitInMB": target.memory_size,
                "invokedFunctionArn": (
                    f"arn:aws:lambda:{self.config.AWS_REGION}:{ACCOUNT_ID}:function:{target.name}"
                ),
            }
        )

        request = ExecutionRequest(
            handler_path=target.handler_path,
            function_name=target.function_name,
            event=event,
            context=handler_context,
            timeout_ms=None if self.config.IGNORE_TIMEOUT else target.timeout_ms,
            env=build_environment(self.config, target),
            request_id=request_id,
        )
        logger.info(
            f"Invoking {target.name} ({target.handler_path}:{target.function_name})",
            extra={"function_name": target.name, "timeout_ms": request.timeout_ms},
        )
        return await self.sandbox.execute(request)
