"""
Mapping template interpreter.

Evaluates every expression token of a template against a RequestScope and
substitutes the results. A token that cannot be resolved is left in the output
exactly as written; the rest of the template is still rendered.
"""

import logging
from collections.abc import Mapping
from typing import Any, Type

from ..core.exceptions import TemplateTokenError
from .bindings import RequestScope, TemplateBinding, to_json
from .nodes import Call, Literal, Member, Node, Root
from .scanner import TextSegment, TokenSegment, scan

logger = logging.getLogger("gateway.mapping")


def evaluate_expression(node: Node, scope: RequestScope) -> Any:
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Root):
        return scope.lookup(node.name)
    if isinstance(node, Member):
        return _member(evaluate_expression(node.target, scope), node.name)
    if isinstance(node, Call):
        target = evaluate_expression(node.target, scope)
        if not isinstance(target, TemplateBinding):
            raise TemplateTokenError(f"'{node.name}' is not callable")
        args = [evaluate_expression(arg, scope) for arg in node.args]
        return target.call(node.name, args)
    raise TemplateTokenError(f"Unsupported node {node!r}")


def _member(target: Any, name: str) -> Any:
    if isinstance(target, TemplateBinding):
        return target.get_member(name)
    if isinstance(target, Mapping):
        if name not in target:
            raise TemplateTokenError(f"Missing member '{name}'")
        return target[name]
    raise TemplateTokenError(f"Cannot read '{name}' of {type(target).__name__}")


def render_value(value: Any, quoted: bool) -> str:
    """Stringify an evaluated token for substitution into the template."""
    if isinstance(value, TemplateBinding):
        raise TemplateTokenError(f"Cannot render {value.binding_name}")
    if value is None:
        return "" if quoted else "null"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, dict, list, tuple)):
        return to_json(value)
    return str(value)


class TemplateInterpreter:
    """
    Renders mapping templates.

    Args:
        error_class: exception type reported for unresolvable tokens
            (TemplateTokenError for requests, ResponseTemplateError for responses)
    """

    def __init__(self, error_class: Type[TemplateTokenError] = TemplateTokenError):
        self.error_class = error_class

    def evaluate(self, template: str, scope: RequestScope) -> str:
        if not template:
            return ""

        out = []
        for segment in scan(template):
            if isinstance(segment, TextSegment):
                out.append(segment.text)
                continue
            out.append(self._render_token(segment, scope))
        return "".join(out)

    def _render_token(self, token: TokenSegment, scope: RequestScope) -> str:
        try:
            value = evaluate_expression(token.expression, scope)
            text = render_value(value, quoted=token.quote is not None)
        except TemplateTokenError as e:
            logger.debug(
                f"Leaving unresolved token {token.raw!r} in place",
                extra={"error_type": self.error_class.error_type, "error_detail": str(e)},
            )
            return token.raw

        if token.wrapped:
            return f'"{text}"'
        return text


_default_interpreter = TemplateInterpreter()


def evaluate(template: str, scope: RequestScope) -> str:
    """Render `template` against `scope` with the default interpreter."""
    return _default_interpreter.evaluate(template, scope)
