"""Gym Platform Python SDK."""

from .client import GymApiClient, GymPlatform
from .config import GymPlatformConfig, ServiceName, TelemetryConfig
from .errors import (
    ApiError,
    GatewayTimeoutError,
    HttpError,
    InvalidConfigError,
    NetworkError,
    ServiceUnavailableError,
    SessionExpiredError,
    TokenRefreshError,
)
from .models import ApiResponse, RequestDescriptor, TokenPair
from .telemetry import configure_telemetry
from .token_store import InMemoryTokenStore, TokenStore

__all__ = [
    "GymApiClient",
    "GymPlatform",
    "GymPlatformConfig",
    "ServiceName",
    "TelemetryConfig",
    "ApiError",
    "GatewayTimeoutError",
    "HttpError",
    "InvalidConfigError",
    "NetworkError",
    "ServiceUnavailableError",
    "SessionExpiredError",
    "TokenRefreshError",
    "ApiResponse",
    "RequestDescriptor",
    "TokenPair",
    "configure_telemetry",
    "InMemoryTokenStore",
    "TokenStore",
]

__version__ = "0.1.0"
