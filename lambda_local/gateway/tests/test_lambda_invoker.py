from unittest.mock import AsyncMock, MagicMock

import pytest

from lambda_local.gateway.config import GatewayConfig
from lambda_local.gateway.models.handler import HandlerTarget
from lambda_local.gateway.services.handler_registry import HandlerRegistry
from lambda_local.gateway.services.lambda_invoker import LambdaInvoker, build_environment
from lambda_local.sandbox import ExecutionResult

PARENT = {"HOME": "/home/dev", "PATH": "/usr/bin", "SECRET": "s3cr3t", "FOO": "parent"}


@pytest.fixture
def target():
    return HandlerTarget(
        name="echo",
        handler_path="/tmp/echo/lambda_function.py",
        timeout_ms=3000,
        environment={"FOO": "descriptor", "TABLE": "users"},
    )


def test_environment_precedence(target):
    cfg = GatewayConfig(
        BIND_PORT=4000,
        STAGE="qa",
        SANDBOX_ENVIRONMENT={"FOO": "sandbox", "AWS_REGION": "eu-west-1", "EXTRA": "1"},
    )

    env = build_environment(cfg, target, parent=PARENT)

    assert env["HOME"] == "/home/dev"
    assert "SECRET" not in env
    assert env["BASE_URL"] == "http://localhost:4000"
    assert env["AWS_STAGE"] == "qa"
    assert env["AWS_REGION"] == "eu-west-1"
    assert env["EXTRA"] == "1"
    assert env["FOO"] == "descriptor"
    assert env["TABLE"] == "users"
    assert env["AWS_LAMBDA_FUNCTION_NAME"] == "echo"
    assert env["PYTHONUNBUFFERED"] == "1"


def test_mirror_environment(target):
    env = build_environment(GatewayConfig(MIRROR_ENVIRONMENT=True), target, parent=PARENT)

    assert env["SECRET"] == "s3cr3t"
    assert env["FOO"] == "descriptor"


@pytest.mark.asyncio
async def test_invoke_builds_execution_request(target):
    sandbox = MagicMock()
    sandbox.execute = AsyncMock(return_value=ExecutionResult.succeeded({"ok": True}))
    invoker = LambdaInvoker(MagicMock(spec=HandlerRegistry), sandbox, GatewayConfig())

    result = await invoker.invoke(target, {"a": 1}, {"requestId": "req-1", "stage": "dev"})

    assert result.success
    request = sandbox.execute.await_args.args[0]
    assert request.handler_path == target.handler_path
    assert request.function_name == "lambda_handler"
    assert request.event == {"a": 1}
    assert request.timeout_ms == 3000
    assert request.request_id == "req-1"
    assert request.context["stage"] == "dev"
    assert request.context["awsRequestId"] == "req-1"
    assert request.context["functionName"] == "echo"
    assert request.context["invokedFunctionArn"].endswith(":function:echo")


@pytest.mark.asyncio
async def test_ignore_timeout(target):
    sandbox = MagicMock()
    sandbox.execute = AsyncMock(return_value=ExecutionResult.succeeded(None))
    invoker = LambdaInvoker(MagicMock(), sandbox, GatewayConfig(IGNORE_TIMEOUT=True))

    await invoker.invoke(target, {}, {"requestId": "req-2"})

    assert sandbox.execute.await_args.args[0].timeout_ms is None


@pytest.mark.asyncio
async def test_invoke_uri_resolves_through_registry(functions_root):
    sandbox = MagicMock()
    sandbox.execute = AsyncMock(return_value=ExecutionResult.succeeded("done"))
    invoker = LambdaInvoker(HandlerRegistry(str(functions_root)), sandbox, GatewayConfig())

    await invoker.invoke_uri("$lEcho", {}, {"requestId": "req-3"})

    request = sandbox.execute.await_args.args[0]
    assert request.handler_path.endswith("lambda_function.py")
    assert request.context["functionName"] == "echo"
