"""
Gateway configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from typing import Dict, Optional

from pydantic import Field

from lambda_local.common.core.config import BaseAppConfig


class GatewayConfig(BaseAppConfig):
    """
    Configuration management for the local API Gateway.
    """

    # Server settings
    BIND_HOST: str = Field(default="127.0.0.1", description="Listen host")
    BIND_PORT: int = Field(default=3000, description="Listen port")

    # Path settings
    API_SPEC_PATH: str = Field(default="api.json", description="Swagger API definition path")
    FUNCTIONS_ROOT: str = Field(
        default="lambdas", description="Directory holding one sub-directory per handler"
    )

    # API Gateway emulation
    STAGE: str = Field(default="dev", description="Stage name reported in the context")
    API_ID: str = Field(default="local-lambda", description="API id reported in the context")
    STAGE_VARIABLES: Dict[str, str] = Field(
        default_factory=dict, description="Stage variables (JSON object)"
    )

    # Sandbox settings
    SANDBOX_ENVIRONMENT: Dict[str, str] = Field(
        default_factory=dict, description="Extra environment for handlers (JSON object)"
    )
    MIRROR_ENVIRONMENT: bool = Field(
        default=False, description="Copy the gateway environment into handlers"
    )
    SANDBOX_PYTHON: str = Field(
        default=sys.executable, description="Interpreter used to run handlers"
    )
    DEFAULT_TIMEOUT_SECONDS: float = Field(default=6.0, description="Default handler timeout")
    TIMEOUT_OVERRIDE_SECONDS: Optional[float] = Field(
        default=None, description="Fixed timeout applied to every handler"
    )
    IGNORE_TIMEOUT: bool = Field(default=False, description="Never time out handlers")
    DEFAULT_MEMORY_SIZE: int = Field(default=1024, description="Reported memory limit (MB)")

    # Values exported to handlers
    AWS_REGION: str = Field(default="us-east-1", description="Region exported to handlers")
    PROJECT_NAME: str = Field(default="", description="Project name exported to handlers")

    # Hot reload of the API definition
    CONFIG_RELOAD_ENABLED: bool = Field(default=True, description="Watch the API definition")
    CONFIG_RELOAD_INTERVAL: float = Field(default=1.0, description="Watch interval (seconds)")

    # model_config is inherited

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.BIND_PORT}"


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = GatewayConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
