"""Configuration for Gym Platform SDK.

Uses Pydantic v2 for validation with sensible defaults. Each backend
microservice has its own base URL; the identity service also hosts the
refresh-token endpoint.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
)

from .errors import InvalidConfigError

DEFAULT_PUBLIC_ENDPOINTS: tuple[str, ...] = (
    "/auth/login",
    "/auth/register",
    "/auth/send-otp",
    "/auth/verify-otp",
    "/auth/forgot-password",
    "/auth/reset-password",
    "/auth/refresh-token",
    "/auth/verify-2fa-login",
)


class ServiceName(StrEnum):
    """Backend microservices reachable through the SDK."""

    IDENTITY = "identity"
    MEMBER = "member"
    SCHEDULE = "schedule"
    BILLING = "billing"


class TelemetryConfig(BaseModel):
    """Logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "gym-platform-sdk"
    trace_requests: bool = True
    log_level: str = "INFO"


class GymPlatformConfig(BaseModel):
    """Main configuration for Gym Platform SDK."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    # Required
    identity_url: HttpUrl

    # Other services fall back to identity_url when unset
    member_url: HttpUrl | None = None
    schedule_url: HttpUrl | None = None
    billing_url: HttpUrl | None = None

    # HTTP settings
    timeout: Annotated[float, Field(gt=0, le=300)] = 30.0
    connect_timeout: Annotated[float, Field(gt=0, le=60)] = 10.0
    max_connections: Annotated[int, Field(ge=1, le=1000)] = 100
    max_keepalive_connections: Annotated[int, Field(ge=0, le=1000)] = 20
    user_agent: str = "gym-platform-sdk/0.1.0 Python"

    # Token refresh
    refresh_endpoint: str = "/auth/refresh-token"
    refresh_timeout: Annotated[float, Field(gt=0, le=300)] = 15.0
    public_endpoints: tuple[str, ...] = DEFAULT_PUBLIC_ENDPOINTS

    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("refresh_endpoint")
    @classmethod
    def validate_refresh_endpoint(cls, v: str) -> str:
        """Refresh endpoint must be a path on the identity service."""
        if not v.startswith("/"):
            msg = f"refresh_endpoint must start with '/': {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("public_endpoints")
    @classmethod
    def validate_public_endpoints(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Empty fragments would match every path."""
        if any(not fragment for fragment in v):
            msg = "public_endpoints must not contain empty fragments"
            raise ValueError(msg)
        return v

    @property
    def identity_url_str(self) -> str:
        """Get identity base URL as string without trailing slash."""
        return str(self.identity_url).rstrip("/")

    @property
    def refresh_url(self) -> str:
        """Absolute URL of the refresh-token endpoint."""
        return f"{self.identity_url_str}{self.refresh_endpoint}"

    def service_url(self, service: ServiceName | str) -> str:
        """Get base URL for a backend service without trailing slash."""
        service = ServiceName(service)
        url = {
            ServiceName.IDENTITY: self.identity_url,
            ServiceName.MEMBER: self.member_url,
            ServiceName.SCHEDULE: self.schedule_url,
            ServiceName.BILLING: self.billing_url,
        }[service]
        return str(url or self.identity_url).rstrip("/")

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "GYM_PLATFORM_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        identity_url = get_env("IDENTITY_URL")
        if not identity_url:
            msg = f"{prefix}IDENTITY_URL environment variable is required"
            raise InvalidConfigError(msg, field="identity_url")

        return cls(
            identity_url=identity_url,
            member_url=get_env("MEMBER_URL"),
            schedule_url=get_env("SCHEDULE_URL"),
            billing_url=get_env("BILLING_URL"),
            timeout=float(get_env("TIMEOUT", "30.0")),
            refresh_timeout=float(get_env("REFRESH_TIMEOUT", "15.0")),
        )
