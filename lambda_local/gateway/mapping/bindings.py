"""
Scope bindings exposed to mapping templates.

Only the members and methods listed on each binding are reachable from a
template; nothing else on the Python object can be accessed.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Sequence
from urllib.parse import quote, unquote

from ..core.exceptions import TemplateTokenError
from .jsonpath import JsonPath


def to_json(value: Any) -> str:
    """Compact JSON encoding used for every JSON string the templates produce."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return to_json(value)


class TemplateBinding:
    """Base class of objects that templates may navigate and call."""

    members: FrozenSet[str] = frozenset()
    methods: FrozenSet[str] = frozenset()

    def get_member(self, name: str) -> Any:
        if name not in self.members:
            raise TemplateTokenError(f"Unknown member '{name}' on {self.binding_name}")
        return getattr(self, name)

    def call(self, name: str, args: Sequence[Any]) -> Any:
        if name not in self.methods:
            raise TemplateTokenError(f"Unknown method '{name}' on {self.binding_name}")
        try:
            return getattr(self, name)(*args)
        except TypeError as e:
            raise TemplateTokenError(f"Bad arguments for {self.binding_name}.{name}: {e}") from e

    @property
    def binding_name(self) -> str:
        return type(self).__name__


class InputBinding(TemplateBinding):
    """`$input`: request parameters and the payload being mapped."""

    members = frozenset({"body"})
    methods = frozenset({"params", "json", "path"})

    def __init__(
        self,
        payload: Any = None,
        body: str = "",
        path: Optional[Mapping[str, str]] = None,
        querystring: Optional[Mapping[str, str]] = None,
        header: Optional[Mapping[str, str]] = None,
    ):
        self.payload = payload
        self.body = body
        self.path_params = dict(path or {})
        self.querystring = dict(querystring or {})
        self.header = {key.lower(): value for key, value in (header or {}).items()}

    @classmethod
    def from_text(cls, text: str, **params) -> "InputBinding":
        """Bind a payload given as text; JSON text is parsed, anything else is kept raw."""
        payload: Any = text
        if text:
            try:
                payload = json.loads(text)
            except ValueError:
                payload = text
        return cls(payload=payload, body=text or "", **params)

    def params(self, name: Optional[str] = None) -> Any:
        if name is None:
            return {
                "path": dict(self.path_params),
                "querystring": dict(self.querystring),
                "header": dict(self.header),
            }
        if not isinstance(name, str):
            raise TemplateTokenError("params() expects a string name")
        if name in self.path_params:
            return self.path_params[name]
        if name in self.querystring:
            return self.querystring[name]
        return self.header.get(name.lower(), "")

    def json(self, path: str = "$") -> str:
        return to_json(JsonPath(path).value(self.payload))

    def path(self, path: str = "$") -> Any:
        return JsonPath(path).value(self.payload)


class UtilBinding(TemplateBinding):
    """`$util`: pure string transforms."""

    methods = frozenset(
        {"escapeJavaScript", "urlEncode", "urlDecode", "base64Encode", "base64Decode"}
    )

    def escapeJavaScript(self, value: Any) -> str:
        # Apostrophes become \' as in API Gateway; that escape is not valid JSON.
        return json.dumps(_as_text(value), ensure_ascii=False)[1:-1].replace("'", "\\'")

    def urlEncode(self, value: Any) -> str:
        # Same safe set as JavaScript's encodeURIComponent.
        return quote(_as_text(value), safe="-_.!~*'()")

    def urlDecode(self, value: Any) -> str:
        return unquote(_as_text(value))

    def base64Encode(self, value: Any) -> str:
        return base64.b64encode(_as_text(value).encode("utf-8")).decode("ascii")

    def base64Decode(self, value: Any) -> str:
        try:
            return base64.b64decode(_as_text(value), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise TemplateTokenError(f"Invalid base64 input: {e}") from e


@dataclass
class RequestScope:
    """
    Per-request bindings visible to the template interpreter.

    Built fresh for each request (or response) and discarded after rendering.
    """

    input: InputBinding = field(default_factory=InputBinding)
    context: Dict[str, Any] = field(default_factory=dict)
    stage_variables: Dict[str, str] = field(default_factory=dict)
    util: UtilBinding = field(default_factory=UtilBinding)

    def lookup(self, root: str) -> Any:
        if root == "input":
            return self.input
        if root == "context":
            return self.context
        if root == "util":
            return self.util
        if root == "stageVariables":
            return self.stage_variables
        raise TemplateTokenError(f"Unknown root '{root}'")
