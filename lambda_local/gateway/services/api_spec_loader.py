"""
API definition loader.

Parses a Swagger document (JSON or YAML) whose operations carry the
`x-amazon-apigateway-integration` extension and builds an immutable ApiSpec.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from ..core.exceptions import ApiSpecError, DuplicateRouteError
from ..models.api_spec import IntegrationDefinition
from .route_table import ANY_METHOD, RouteTable

logger = logging.getLogger("gateway.api_spec_loader")

INTEGRATION_KEY = "x-amazon-apigateway-integration"
ANY_METHOD_KEY = "x-amazon-apigateway-any-method"
HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")


@dataclass(frozen=True)
class ApiSpec:
    """Parsed API definition. Immutable after load."""

    source: str
    title: str
    routes: RouteTable


def read_document(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ApiSpecError(path, str(e)) from e

    try:
        if Path(path).suffix.lower() == ".json":
            document = json.loads(content)
        else:
            document = yaml.safe_load(content)
    except (ValueError, yaml.YAMLError) as e:
        raise ApiSpecError(path, f"parse error: {e}") from e

    if not isinstance(document, dict):
        raise ApiSpecError(path, "document root must be a mapping")
    return document


def build_api_spec(document: Dict[str, Any], source: str = "<memory>") -> ApiSpec:
    """Validate every integration and register its route in declaration order."""
    paths = document.get("paths") or {}
    if not isinstance(paths, dict):
        raise ApiSpecError(source, "'paths' must be a mapping")

    table = RouteTable()
    for api_path, operations in paths.items():
        if not isinstance(operations, dict):
            raise ApiSpecError(source, f"path {api_path} must be a mapping")

        for key, operation in operations.items():
            if key == ANY_METHOD_KEY:
                method = ANY_METHOD
            elif key.lower() in HTTP_METHODS:
                method = key.upper()
            else:
                continue

            raw_integration = (operation or {}).get(INTEGRATION_KEY)
            if raw_integration is None:
                logger.warning(f"Skipping {method} {api_path}: no {INTEGRATION_KEY}")
                continue

            try:
                integration = IntegrationDefinition.model_validate(raw_integration)
            except ValidationError as e:
                raise ApiSpecError(source, f"{method} {api_path}: {e}") from e

            try:
                table.register(method, api_path, integration)
            except DuplicateRouteError as e:
                raise ApiSpecError(source, str(e)) from e

    title = (document.get("info") or {}).get("title", "")
    return ApiSpec(source=source, title=title, routes=table.freeze())


def load_api_spec(path: str) -> ApiSpec:
    spec = build_api_spec(read_document(path), source=path)
    logger.info(f"Loaded {len(spec.routes)} routes from {path}")
    return spec
