"""
Execution models.

One ExecutionRequest goes into the sandbox, exactly one ExecutionResult comes out.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResultKind(str, Enum):
    SUCCESS = "Success"
    HANDLER_FAILURE = "HandlerFailure"
    TIMEOUT = "Timeout"
    PROCESS_CRASHED = "ProcessCrashed"
    MODULE_LOAD_ERROR = "ModuleLoadError"


class ExecutionRequest(BaseModel):
    """Immutable description of a single handler invocation."""

    model_config = ConfigDict(frozen=True)

    handler_path: str
    function_name: str
    event: Any = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    timeout_ms: Optional[int] = 6000
    env: Dict[str, str] = Field(default_factory=dict)
    request_id: Optional[str] = None


class ExecutionResult(BaseModel):
    """
    Terminal outcome of an invocation.

    `kind` tags the variant; `payload` is set for Success, `message` for every
    failure kind.
    """

    model_config = ConfigDict(frozen=True)

    kind: ResultKind
    payload: Any = None
    message: str = ""
    error_type: Optional[str] = None
    stack_trace: List[str] = Field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.kind is ResultKind.SUCCESS

    def as_text(self) -> str:
        """String form used for response selection: payload on success, message otherwise."""
        if not self.success:
            return self.message
        if isinstance(self.payload, str):
            return self.payload
        return json.dumps(self.payload, separators=(",", ":"), ensure_ascii=False)

    def error_document(self) -> Dict[str, Any]:
        """Lambda-style error object exposed to response templates."""
        return {
            "errorMessage": self.message,
            "errorType": self.error_type or self.kind.value,
            "stackTrace": list(self.stack_trace),
        }

    def error_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "errorType": self.kind.value}
        if self.error_type:
            body["handlerErrorType"] = self.error_type
        return body

    @classmethod
    def succeeded(cls, payload: Any, **kwargs) -> "ExecutionResult":
        return cls(kind=ResultKind.SUCCESS, payload=payload, **kwargs)

    @classmethod
    def handler_failure(cls, message: str, **kwargs) -> "ExecutionResult":
        return cls(kind=ResultKind.HANDLER_FAILURE, message=message, **kwargs)

    @classmethod
    def timed_out(cls, timeout_ms: int, **kwargs) -> "ExecutionResult":
        return cls(
            kind=ResultKind.TIMEOUT,
            message=f"Task timed out after {timeout_ms / 1000:.2f} seconds",
            **kwargs,
        )

    @classmethod
    def process_crashed(cls, detail: str, **kwargs) -> "ExecutionResult":
        return cls(kind=ResultKind.PROCESS_CRASHED, message=detail, **kwargs)

    @classmethod
    def module_load_error(cls, detail: str, **kwargs) -> "ExecutionResult":
        return cls(kind=ResultKind.MODULE_LOAD_ERROR, message=detail, **kwargs)
