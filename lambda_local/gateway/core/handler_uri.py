"""
Where: lambda_local/gateway/core/handler_uri.py
What: Normalize integration `uri` values into handler names.
Why: Keep uri parsing at the boundary between the API definition and the registry.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote

_LOCAL_PREFIX = "$l"
_INVOCATION_URI_PATTERN = re.compile(
    r"^arn:[^:]+:apigateway:[^:]+:lambda:path/[^/]+/functions/(?P<function>.+?)/invocations$"
)
_FULL_ARN_PATTERN = re.compile(
    r"^arn:[^:]+:lambda:[^:]+:\d{12}:function:(?P<name>[^:]+)(?::(?P<qualifier>[^:]+))?$"
)
_PARTIAL_ARN_PATTERN = re.compile(r"^\d{12}:function:(?P<name>[^:]+)(?::(?P<qualifier>[^:]+))?$")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


@dataclass(frozen=True)
class HandlerUri:
    original: str
    name: str
    qualifier: Optional[str] = None
    local: bool = False


def kebab_case(value: str) -> str:
    """`GetItem` → `get-item`, `list_items` → `list-items`."""
    value = _CAMEL_BOUNDARY.sub("-", value)
    return re.sub(r"[\s_]+", "-", value).strip("-").lower()


def parse_handler_uri(uri: str) -> HandlerUri:
    """
    Normalize an integration uri.

    Supported inputs:
    - local reference (`$lGetItem`, resolved to the `get-item` directory)
    - API Gateway invocation uri
      (`arn:aws:apigateway:region:lambda:path/2015-03-31/functions/<lambda arn>/invocations`)
    - full Lambda ARN (`arn:aws:lambda:region:account:function:my-function[:qualifier]`)
    - partial ARN (`account:function:my-function[:qualifier]`)
    - plain function name (`my-function`)
    """
    normalized = unquote(uri or "").strip()
    if not normalized:
        raise ValueError("Integration uri is required")

    if normalized.startswith(_LOCAL_PREFIX):
        name = normalized[len(_LOCAL_PREFIX) :]
        if not name:
            raise ValueError(f"Empty local handler reference: {uri}")
        return HandlerUri(original=normalized, name=kebab_case(name), local=True)

    invocation = _INVOCATION_URI_PATTERN.match(normalized)
    target = invocation.group("function") if invocation else normalized

    for pattern in (_FULL_ARN_PATTERN, _PARTIAL_ARN_PATTERN):
        arn = pattern.match(target)
        if arn:
            return HandlerUri(
                original=normalized, name=arn.group("name"), qualifier=arn.group("qualifier")
            )

    return HandlerUri(original=normalized, name=target)
