"""Response classification for Gym Platform SDK.

Turns an HTTP response into exactly one of three outcomes: a success
payload, a request for token refresh and replay, or a terminal error.
Classification never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

import httpx

from ..models import ApiResponse
from .errors import ErrorFactory

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..errors import ApiError

DIAGNOSTIC_TAGS: Final[dict[int, str]] = {
    503: "service_unavailable",
    504: "gateway_timeout",
}


@dataclass(frozen=True, slots=True)
class Success:
    """2xx response."""

    response: ApiResponse


@dataclass(frozen=True, slots=True)
class AuthRetry:
    """401 on a protected endpoint while a replay is still available."""


@dataclass(frozen=True, slots=True)
class TerminalError:
    """Non-retryable failure; ``diagnostic`` tags 503/504 for logging."""

    error: ApiError
    diagnostic: str | None = None


Outcome = Success | AuthRetry | TerminalError


def parse_body(response: httpx.Response) -> Any:
    """Parse body as JSON when the content type says so, else as text."""
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


class ResponseClassifier:
    """Classifies responses against the public-endpoint allowlist."""

    def __init__(self, is_public: Callable[[str], bool]) -> None:
        """Initialize classifier.

        Args:
            is_public: Predicate telling whether a path is a public endpoint.
        """
        self._is_public = is_public

    def classify(
        self,
        response: httpx.Response,
        endpoint_path: str,
        *,
        replay_available: bool,
    ) -> Outcome:
        """Classify a response.

        Args:
            response: HTTP response.
            endpoint_path: Path the request was sent to.
            replay_available: Whether the request may still be replayed
                after a token refresh.

        Returns:
            Success, AuthRetry or TerminalError.
        """
        status = response.status_code
        body = parse_body(response)

        if status == 401 and replay_available and not self._is_public(endpoint_path):
            return AuthRetry()

        if not response.is_success:
            error = ErrorFactory.from_status(status, response.reason_phrase, body)
            return TerminalError(error, DIAGNOSTIC_TAGS.get(status))

        if isinstance(body, dict):
            data = body.get("data")
            return Success(
                ApiResponse(
                    success=True,
                    data=body if data is None else data,
                    message=_optional_str(body.get("message")),
                    errors=body.get("errors"),
                )
            )
        return Success(ApiResponse(success=True, data=body))
