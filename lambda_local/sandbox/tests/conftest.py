import os
from pathlib import Path

import pytest

from lambda_local.sandbox import ExecutionRequest, ExecutionSandbox

HANDLERS_DIR = Path(__file__).parent / "handlers"


@pytest.fixture
def sandbox():
    return ExecutionSandbox()


@pytest.fixture
def make_request():
    def factory(function_name, module="basic.py", **kwargs):
        kwargs.setdefault("env", {"PATH": os.environ.get("PATH", "")})
        kwargs.setdefault("timeout_ms", 5000)
        kwargs.setdefault("context", {"functionName": "test-fn", "awsRequestId": "rid-1"})
        return ExecutionRequest(
            handler_path=str(HANDLERS_DIR / module),
            function_name=function_name,
            **kwargs,
        )

    return factory
