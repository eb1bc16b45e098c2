"""
Shared configuration management for the media catalog access gateway.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Upstream media server
    upstream_url: str = Field(default="http://localhost:8096")
    upstream_api_key: str = Field(default="")
    upstream_timeout_seconds: float = Field(default=15.0, gt=0)

    # Rate limiting
    rate_limit_window_seconds: float = Field(default=15 * 60, gt=0)
    rate_limit_max_requests: int = Field(default=100, ge=1)
    trust_forwarded_headers: bool = Field(default=False)

    # Principal resolution; 0 re-resolves on every call
    principal_cache_ttl_seconds: float = Field(default=0.0, ge=0)

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "gateway"
    port: int = 5000
    host: str = "0.0.0.0"


def get_config(service_name: str = "gateway", **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
