"""Error classes for Gym Platform SDK.

Every terminal outcome surfaced to a caller is an ``ApiError``: a message,
an optional HTTP status and the server-supplied ``errors`` payload, plus a
categorized error code for logging.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."


class ErrorCode(StrEnum):
    """Standardized error codes for Gym Platform SDK."""

    # Authentication errors (1xxx)
    SESSION_EXPIRED = "AUTH_1001"
    TOKEN_REFRESH_FAILED = "AUTH_1002"
    UNAUTHORIZED = "AUTH_1003"

    # Validation errors (2xxx)
    INVALID_CONFIG = "VAL_2001"

    # Network errors (3xxx)
    NETWORK_ERROR = "NET_3001"
    TIMEOUT_ERROR = "NET_3002"

    # HTTP errors (4xxx)
    HTTP_ERROR = "HTTP_4001"

    # Server errors (5xxx)
    SERVICE_UNAVAILABLE = "SRV_5001"
    GATEWAY_TIMEOUT = "SRV_5002"


class ApiError(Exception):
    """Base error for Gym Platform SDK, raised to callers on any failure."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str = ErrorCode.HTTP_ERROR,
        *,
        status: int | None = None,
        errors: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if isinstance(code, str) else code.value
        self.status = status
        self.errors = errors
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "message": self.message,
            "code": self.code,
            "status": self.status,
            "errors": self.errors,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, "
            f"status={self.status!r}, message={self.message!r})"
        )


class NetworkError(ApiError):
    """No response was received from the backend."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        cause: Exception | None = None,
        code: ErrorCode = ErrorCode.NETWORK_ERROR,
    ) -> None:
        super().__init__(
            message,
            code,
            details={"cause": str(cause)} if cause else None,
        )
        self.__cause__ = cause


class HttpError(ApiError):
    """Non-2xx response that is not eligible for a token refresh."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        errors: Any = None,
        code: ErrorCode = ErrorCode.HTTP_ERROR,
    ) -> None:
        super().__init__(message, code, status=status, errors=errors)


class ServiceUnavailableError(HttpError):
    """503 response; the target service is down."""

    def __init__(self, message: str, *, errors: Any = None) -> None:
        super().__init__(
            message,
            status=503,
            errors=errors,
            code=ErrorCode.SERVICE_UNAVAILABLE,
        )


class GatewayTimeoutError(HttpError):
    """504 response; the gateway gave up waiting on the service."""

    def __init__(self, message: str, *, errors: Any = None) -> None:
        super().__init__(
            message,
            status=504,
            errors=errors,
            code=ErrorCode.GATEWAY_TIMEOUT,
        )


class SessionExpiredError(ApiError):
    """Refresh failed, or a replayed request was still unauthorized."""

    def __init__(
        self,
        message: str = SESSION_EXPIRED_MESSAGE,
        *,
        reason: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.SESSION_EXPIRED,
            status=401,
            details={"reason": reason} if reason else None,
        )


class TokenRefreshError(ApiError):
    """The refresh-token exchange did not produce a new token pair."""

    def __init__(
        self,
        message: str = "Failed to refresh token",
        *,
        status: int | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.TOKEN_REFRESH_FAILED,
            status=status,
        )


class InvalidConfigError(ApiError):
    """Invalid SDK configuration."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_CONFIG,
            details={"field": field} if field else None,
        )
