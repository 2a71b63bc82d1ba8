"""Runtime settings loaded from the process environment.

The runtime API address is provided by the execution environment in
``AWS_LAMBDA_RUNTIME_API``. Response-client tuning can be overridden with
``INVOKELOOP_``-prefixed variables, e.g. ``INVOKELOOP_RESPONSE_TIMEOUT=10``.
"""

from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from invokeloop.core.errors import ConfigurationError

RUNTIME_API_ENV = "AWS_LAMBDA_RUNTIME_API"


class RuntimeSettings(BaseSettings):
    """Settings for one runtime API connection."""

    runtime_api: str = Field(
        validation_alias=RUNTIME_API_ENV,
        min_length=1,
        description="host:port of the runtime API",
    )
    api_version: str = Field(default="2018-06-01", description="Runtime API version path segment")

    response_connect_timeout: float = Field(default=5.0, gt=0)
    response_header_timeout: float = Field(default=5.0, gt=0)
    response_timeout: float = Field(default=30.0, gt=0)
    response_keepalive_expiry: float = Field(default=60.0, gt=0)

    log_level: str = Field(default="INFO", description="Level for the invokeloop loggers")

    model_config: dict[str, Any] = {
        "env_prefix": "INVOKELOOP_",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def endpoint(self) -> str:
        return f"http://{self.runtime_api}/{self.api_version}/runtime"


def load_settings(**overrides: Any) -> RuntimeSettings:
    """Load settings from the environment.

    Raises:
        ConfigurationError: If the runtime API address is missing or invalid.
    """
    try:
        return RuntimeSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"invalid runtime configuration ({RUNTIME_API_ENV} set?): {e}") from e
