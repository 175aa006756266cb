"""
Handler registry.

Resolves the opaque `uri` of an integration to handler code on disk and reads
the optional per-handler descriptor (`function.yml` or `cf.json`).
"""

import json
import logging
import os
import string
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..core.exceptions import HandlerResolutionError
from ..core.handler_uri import kebab_case, parse_handler_uri
from ..models.handler import HandlerTarget

logger = logging.getLogger("gateway.handler_registry")

DEFAULT_HANDLER = "lambda_function.lambda_handler"
DESCRIPTOR_YAML = "function.yml"
DESCRIPTOR_CF = "cf.json"


class HandlerRegistry:
    def __init__(
        self,
        functions_root: str,
        default_timeout: float = 6.0,
        default_memory_size: int = 1024,
        timeout_override: Optional[float] = None,
    ):
        """
        Args:
            functions_root: directory holding one sub-directory per handler
            default_timeout: timeout (seconds) when the descriptor sets none
            default_memory_size: memory size (MB) when the descriptor sets none
            timeout_override: fixed timeout (seconds) replacing every descriptor value
        """
        self.functions_root = Path(functions_root)
        self.default_timeout = default_timeout
        self.default_memory_size = default_memory_size
        self.timeout_override = timeout_override

    def resolve(self, uri: Optional[str]) -> HandlerTarget:
        """
        Resolve an integration uri to a HandlerTarget.

        Raises:
            HandlerResolutionError: bad uri or missing handler directory
        """
        try:
            parsed = parse_handler_uri(uri or "")
        except ValueError as e:
            raise HandlerResolutionError(str(uri), str(e)) from e

        directory = self._find_directory(parsed.name)
        if directory is None:
            raise HandlerResolutionError(
                parsed.original,
                f"no handler directory '{parsed.name}' under {self.functions_root}",
            )

        descriptor = self._load_descriptor(directory)
        handler = descriptor.get("handler") or DEFAULT_HANDLER
        if not isinstance(handler, str):
            raise HandlerResolutionError(parsed.original, f"invalid handler {handler!r}")
        module_name, _, function_name = handler.rpartition(".")
        if not module_name or not function_name:
            raise HandlerResolutionError(parsed.original, f"invalid handler '{handler}'")

        environment = descriptor.get("environment") or {}
        if not isinstance(environment, dict):
            raise HandlerResolutionError(parsed.original, "handler environment must be a mapping")

        timeout = descriptor.get("timeout") or self.default_timeout
        if self.timeout_override is not None:
            timeout = self.timeout_override

        return HandlerTarget(
            name=parsed.name,
            handler_path=str(directory / (module_name.replace(".", os.sep) + ".py")),
            function_name=function_name,
            memory_size=int(descriptor.get("memory_size") or self.default_memory_size),
            timeout_ms=int(float(timeout) * 1000),
            environment={str(k): str(v) for k, v in environment.items()},
        )

    def _find_directory(self, name: str) -> Optional[Path]:
        for candidate in (name, kebab_case(name)):
            directory = (self.functions_root / candidate).resolve()
            if directory.is_dir():
                return directory
        return None

    def _load_descriptor(self, directory: Path) -> Dict[str, Any]:
        yaml_path = directory / DESCRIPTOR_YAML
        if yaml_path.is_file():
            return self._load_yaml_descriptor(yaml_path)

        cf_path = directory / DESCRIPTOR_CF
        if cf_path.is_file():
            return self._load_cf_descriptor(cf_path)

        return {}

    def _load_yaml_descriptor(self, path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            # Substitute environment variables using string.Template.
            template = string.Template(f.read())

        content = template.safe_substitute(os.environ)
        try:
            cfg = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing handler descriptor {path}: {e}")
            raise HandlerResolutionError(str(path), f"invalid descriptor: {e}") from e
        if not isinstance(cfg, dict):
            raise HandlerResolutionError(str(path), "descriptor must be a mapping")
        return cfg

    def _load_cf_descriptor(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f) or {}
        except ValueError as e:
            raise HandlerResolutionError(str(path), f"invalid descriptor: {e}") from e

        properties = document.get("Properties", {}) if isinstance(document, dict) else None
        if not isinstance(properties, dict):
            raise HandlerResolutionError(str(path), "descriptor Properties must be a mapping")

        return {
            "handler": properties.get("Handler"),
            "timeout": properties.get("Timeout"),
            "memory_size": properties.get("MemorySize"),
            "environment": (properties.get("Environment") or {}).get("Variables", {}),
        }
