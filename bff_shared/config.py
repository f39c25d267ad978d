"""
Shared configuration management for the Orchestrix BFF.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings.

    Every field is read from the environment with the ``BFF_`` prefix
    (``BFF_UPSTREAM_API_URL``, ``BFF_LOG_LEVEL``...) or from a local ``.env``.
    Values are fixed once the process has started.
    """

    model_config = SettingsConfigDict(
        env_prefix="BFF_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Listener
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    # Upstream orchestration API
    upstream_api_url: str = Field(default="http://localhost:8080")
    upstream_timeout_seconds: float = Field(default=30.0, gt=0)

    # HTTP surface
    api_prefix: str = Field(default="/api/v1")
    cors_origin: str = Field(default="http://localhost:5173")

    # Rate limiting (requests per minute per client, <= 0 disables)
    rate_limit_per_minute: int = Field(default=100)

    # Audit log routes are admin-only when set
    audit_require_admin: bool = Field(default=False)

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: str = Field(default="http://localhost:4317")
    enable_console_tracing: bool = Field(default=False)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "bff"


def get_config(service_name: str = "bff", **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
