"""Refresh-token exchange for Gym Platform SDK.

Performs one ``POST {identity}/auth/refresh-token`` call and validates the
response shape. No retries: retry policy belongs to whoever calls the
exchange.
"""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from ..errors import TokenRefreshError
from ..models import RefreshTokenResponse, TokenPair
from ..telemetry import trace_operation
from .auth_policy import JSON_CONTENT_TYPE


class RefreshTokenExchange:
    """Exchanges a refresh token for a new token pair."""

    def __init__(self, http: httpx.AsyncClient, refresh_url: str) -> None:
        """Initialize refresh exchange.

        Args:
            http: Async HTTP client.
            refresh_url: Absolute URL of the refresh-token endpoint.
        """
        self._http = http
        self._refresh_url = refresh_url

    @property
    def refresh_url(self) -> str:
        """Get refresh endpoint URL."""
        return self._refresh_url

    @staticmethod
    def build_request_body(refresh_token: str) -> dict[str, str]:
        """Build refresh request payload."""
        return {"refreshToken": refresh_token}

    async def __call__(self, refresh_token: str) -> TokenPair:
        """Perform the exchange.

        Args:
            refresh_token: Current refresh token.

        Returns:
            The new token pair.

        Raises:
            TokenRefreshError: On transport failure, non-2xx status or an
                unexpected response shape.
        """
        with trace_operation("refresh_token_exchange", attributes={"http.url": self._refresh_url}):
            try:
                response = await self._http.post(
                    self._refresh_url,
                    json=self.build_request_body(refresh_token),
                    headers={"Content-Type": JSON_CONTENT_TYPE},
                )
            except httpx.HTTPError as e:
                raise TokenRefreshError(f"Refresh request failed: {e}") from e

            if not response.is_success:
                raise TokenRefreshError(
                    f"Refresh rejected: HTTP {response.status_code}",
                    status=response.status_code,
                )

            try:
                parsed = RefreshTokenResponse.model_validate(response.json())
            except (ValueError, ValidationError) as e:
                raise TokenRefreshError(
                    "Unexpected refresh response",
                    status=response.status_code,
                ) from e

            return parsed.to_token_pair()
