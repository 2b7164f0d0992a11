"""Centralized error factory for Gym Platform SDK.

Provides consistent error creation from HTTP statuses and transport
failures across all SDK components.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import (
    ApiError,
    ErrorCode,
    GatewayTimeoutError,
    HttpError,
    NetworkError,
    ServiceUnavailableError,
    SessionExpiredError,
)


class ErrorFactory:
    """Centralized error creation with consistent structure."""

    @staticmethod
    def message_from(body: Any, status: int, reason: str) -> str:
        """Server message if the body carries one, else a status line.

        Args:
            body: Parsed response body (dict, list or text).
            status: HTTP status code.
            reason: HTTP reason phrase.

        Returns:
            Human-readable message.
        """
        if isinstance(body, dict):
            message = body.get("message")
            if message is not None:
                return str(message)
        return f"HTTP {status}: {reason}"

    @staticmethod
    def from_status(
        status: int,
        reason: str,
        body: Any = None,
    ) -> HttpError:
        """Create SDK error for a non-2xx response.

        Args:
            status: HTTP status code.
            reason: HTTP reason phrase.
            body: Parsed response body.

        Returns:
            Appropriate HttpError subclass.
        """
        message = ErrorFactory.message_from(body, status, reason)
        errors = body.get("errors") if isinstance(body, dict) else None

        if status == 401:
            return HttpError(message, status=status, errors=errors, code=ErrorCode.UNAUTHORIZED)
        if status == 503:
            return ServiceUnavailableError(message, errors=errors)
        if status == 504:
            return GatewayTimeoutError(message, errors=errors)
        return HttpError(message, status=status, errors=errors)

    @staticmethod
    def from_transport_error(error: httpx.HTTPError) -> NetworkError:
        """Wrap a failure where no response was received."""
        message = str(error) or error.__class__.__name__
        if isinstance(error, httpx.TimeoutException):
            return NetworkError(message, cause=error, code=ErrorCode.TIMEOUT_ERROR)
        return NetworkError(message, cause=error)

    @staticmethod
    def session_expired(reason: str | None = None) -> SessionExpiredError:
        """Create the terminal session-expired error."""
        return SessionExpiredError(reason=reason)

    @staticmethod
    def is_retryable(error: ApiError) -> bool:
        """Check whether the caller may retry later.

        Network failures and 503/504 are transient; nothing in the SDK
        retries them automatically.
        """
        return isinstance(error, (NetworkError, ServiceUnavailableError, GatewayTimeoutError))
