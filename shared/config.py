"""
Configuration management for the JWKS signing-key client.
"""

from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CACHE_MAX_AGE = 10 * 60 * 60  # 10 hours, in seconds
DEFAULT_CACHE_MAX_ENTRIES = 5
DEFAULT_JWKS_REQUESTS_PER_MINUTE = 10


class JWKSClientConfig(BaseSettings):
    """Options recognised by :class:`JWKSClient`.

    Every field can also be supplied through the environment with the
    ``JWKS_`` prefix (``JWKS_JWKS_URI``, ``JWKS_CACHE``, ...) or a ``.env``
    file. Dict-valued fields are read from the environment as JSON.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWKS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Endpoint
    jwks_uri: str
    request_headers: Dict[str, str] = Field(default_factory=dict)
    strict_ssl: bool = True
    timeout: float = Field(default=10.0, gt=0)
    request_agent_options: Dict[str, Any] = Field(default_factory=dict)

    # Signing key cache
    cache: bool = False
    cache_max_age: float = Field(default=DEFAULT_CACHE_MAX_AGE, gt=0)
    cache_max_entries: int = Field(default=DEFAULT_CACHE_MAX_ENTRIES, gt=0)

    # Rate limiting
    rate_limit: bool = False
    jwks_requests_per_minute: int = Field(default=DEFAULT_JWKS_REQUESTS_PER_MINUTE, gt=0)
    rate_limit_jitter: float = Field(default=0.0, ge=0)
    rate_limit_wait: bool = False
    rate_limit_max_wait: Optional[float] = Field(default=None, ge=0)

    # Observability
    log_level: str = "info"

    @field_validator("jwks_uri")
    @classmethod
    def _check_jwks_uri(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("jwks_uri must not be empty")
        if not value.startswith(("http://", "https://")):
            raise ValueError("jwks_uri must be an http(s) URL")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.lower()
        if level not in {"debug", "info", "warning", "error", "critical"}:
            raise ValueError(f"Unsupported log level '{value}'")
        return level


def get_config(**overrides: Any) -> JWKSClientConfig:
    """Build client configuration from the environment plus explicit overrides."""
    return JWKSClientConfig(**overrides)
