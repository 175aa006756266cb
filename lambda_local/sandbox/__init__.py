from .models import ExecutionRequest, ExecutionResult, ResultKind
from .sandbox import ExecutionSandbox

__all__ = ["ExecutionRequest", "ExecutionResult", "ResultKind", "ExecutionSandbox"]
