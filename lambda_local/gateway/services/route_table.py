"""
Route table.

Holds the (method, path pattern) → integration registrations of an API
definition and resolves concrete request paths against them.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Pattern, Tuple
from urllib.parse import unquote

from ..core.exceptions import DuplicateRouteError, RouteNotFoundError
from ..models.api_spec import IntegrationDefinition

ANY_METHOD = "ANY"

_PARAM = re.compile(r"\{([^{}/]+?)(\+?)\}")


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    param_names: Tuple[str, ...]
    pattern: Pattern[str]
    integration: IntegrationDefinition


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    path_params: Dict[str, str] = field(default_factory=dict)

    @property
    def integration(self) -> IntegrationDefinition:
        return self.route.integration


def path_to_regex(path_pattern: str) -> Tuple[Pattern[str], Tuple[str, ...]]:
    """
    Convert a path pattern to a regular expression.

    Example: "/users/{user_id}/posts/{post_id}"
        → "^/users/([^/]+)/posts/([^/]+)$", ("user_id", "post_id")

    A greedy `{name+}` segment matches the remainder of the path.
    """
    names: List[str] = []
    parts: List[str] = []
    last = 0
    for match in _PARAM.finditer(path_pattern):
        parts.append(re.escape(path_pattern[last : match.start()]))
        names.append(match.group(1))
        parts.append("(.+)" if match.group(2) else "([^/]+)")
        last = match.end()
    parts.append(re.escape(path_pattern[last:]))
    return re.compile("^" + "".join(parts) + "$"), tuple(names)


def normalize_path(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path


class RouteTable:
    """
    Ordered collection of routes.

    Populated once while an API definition is loaded and read-only afterwards.
    """

    def __init__(self):
        self._routes: List[Route] = []
        self._keys: set = set()
        self._frozen = False

    def register(self, method: str, path: str, integration: IntegrationDefinition) -> Route:
        if self._frozen:
            raise RuntimeError("RouteTable is frozen")

        method = method.upper()
        path = normalize_path(path)
        key = (method, path)
        if key in self._keys:
            raise DuplicateRouteError(method, path)

        pattern, names = path_to_regex(path)
        route = Route(
            method=method,
            path=path,
            param_names=names,
            pattern=pattern,
            integration=integration,
        )
        self._routes.append(route)
        self._keys.add(key)
        return route

    def freeze(self) -> "RouteTable":
        self._frozen = True
        return self

    def match(self, method: str, path: str) -> RouteMatch:
        """
        Resolve a request to its route.

        Routes declared for the exact method are tried first, in declaration
        order, then ANY routes.

        Raises:
            RouteNotFoundError: when nothing matches
        """
        method = method.upper()
        request_path = normalize_path(path)

        for wanted in (method, ANY_METHOD):
            for route in self._routes:
                if route.method != wanted:
                    continue
                found = route.pattern.match(request_path)
                if found:
                    params = {
                        name: unquote(value)
                        for name, value in zip(route.param_names, found.groups())
                    }
                    return RouteMatch(route=route, path_params=params)

        raise RouteNotFoundError(method, path)

    @property
    def routes(self) -> Tuple[Route, ...]:
        return tuple(self._routes)

    def __len__(self) -> int:
        return len(self._routes)
