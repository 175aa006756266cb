"""
JSON path selection used by `$input.json()` and `$input.path()`.

Expressions are parsed by jsonpath-ng and must start at the root (`$`).
"""

import functools
from typing import Any, List

from jsonpath_ng import parse
from jsonpath_ng.exceptions import JSONPathError

from ..core.exceptions import JsonPathError


@functools.lru_cache(maxsize=512)
def _compile(expression: str):
    try:
        return parse(expression)
    except JSONPathError as e:
        raise JsonPathError(f"Invalid JSON path {expression!r}: {e}") from e


class JsonPath:
    """A compiled JSON path expression."""

    def __init__(self, expression: str):
        if not isinstance(expression, str):
            raise JsonPathError(f"JSON path must be a string, got {type(expression).__name__}")
        text = expression.strip()
        if not text.startswith("$"):
            raise JsonPathError(f"JSON path must start with '$': {expression!r}")
        self.expression = expression
        self.compiled = _compile(text)

    def find(self, document: Any) -> List[Any]:
        """Return every value selected by the path, in document order."""
        try:
            matches = self.compiled.find(document)
        except (IndexError, KeyError, TypeError):
            # Index steps applied to objects or scalars select nothing.
            return []
        return [match.value for match in matches]

    def value(self, document: Any) -> Any:
        """Return the first selected value, or None when nothing matches."""
        matches = self.find(document)
        return matches[0] if matches else None

    def __repr__(self) -> str:
        return f"JsonPath({self.expression!r})"
