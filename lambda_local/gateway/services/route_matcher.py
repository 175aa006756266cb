"""
Route matching service.

Loads the API definition and resolves routes from request paths/methods.

Note:
    Provides functionality different from FastAPI's APIRouter.
    This module implements definition-based route matching; the route table it
    serves is immutable and is swapped as a whole on reload.
"""

import logging
from typing import Optional

from ..core.exceptions import ApiSpecError
from .api_spec_loader import ApiSpec, load_api_spec
from .route_table import RouteMatch

logger = logging.getLogger("gateway.route_matcher")


class RouteMatcher:
    def __init__(self, config_path: str):
        """
        Args:
            config_path: path of the Swagger API definition
        """
        self.config_path = config_path
        self._spec: Optional[ApiSpec] = None

    @property
    def spec(self) -> Optional[ApiSpec]:
        return self._spec

    def load_api_spec(self) -> ApiSpec:
        """
        Load the API definition and cache it.

        Raises:
            ApiSpecError: when the definition cannot be read or is invalid
        """
        self._spec = load_api_spec(self.config_path)
        return self._spec

    def reload(self) -> bool:
        """
        Reload the API definition, keeping the previous routes on failure.

        Returns:
            True when the new definition was applied
        """
        try:
            self._spec = load_api_spec(self.config_path)
        except ApiSpecError as e:
            logger.error(f"Error reloading API definition, keeping previous routes: {e}")
            return False
        return True

    def match_route(self, method: str, path: str) -> RouteMatch:
        """
        Resolve the route for a request.

        Raises:
            RouteNotFoundError: when no route matches
        """
        if self._spec is None:
            self.load_api_spec()
        return self._spec.routes.match(method, path)
