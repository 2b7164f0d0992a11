"""Token storage boundary for Gym Platform SDK.

The SDK only consumes a token store; persisting tokens on a device or in a
browser belongs to the host application. ``InMemoryTokenStore`` covers
server-side callers and tests.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .telemetry import get_logger


@runtime_checkable
class TokenStore(Protocol):
    """Persists and exposes the current access/refresh token pair."""

    async def get_token(self) -> str | None:
        """Get the stored access token."""
        ...

    async def get_refresh_token(self) -> str | None:
        """Get the stored refresh token."""
        ...

    async def store_tokens(self, access_token: str, refresh_token: str) -> None:
        """Replace the stored pair."""
        ...

    async def clear_auth_data(self) -> None:
        """Forget every stored credential."""
        ...


class InMemoryTokenStore:
    """Process-local token store."""

    def __init__(
        self,
        access_token: str | None = None,
        refresh_token: str | None = None,
    ) -> None:
        self._access_token = access_token
        self._refresh_token = refresh_token

    async def get_token(self) -> str | None:
        return self._access_token

    async def get_refresh_token(self) -> str | None:
        return self._refresh_token

    async def store_tokens(self, access_token: str, refresh_token: str) -> None:
        self._access_token = access_token
        self._refresh_token = refresh_token

    async def clear_auth_data(self) -> None:
        self._access_token = None
        self._refresh_token = None


async def read_access_token(store: TokenStore) -> str | None:
    """Read the access token; a failing store reads as "no token"."""
    try:
        return await store.get_token() or None
    except Exception as e:
        get_logger().warning("Token store read failed", token="access", error=str(e))
        return None


async def read_refresh_token(store: TokenStore) -> str | None:
    """Read the refresh token; a failing store reads as "no token"."""
    try:
        return await store.get_refresh_token() or None
    except Exception as e:
        get_logger().warning("Token store read failed", token="refresh", error=str(e))
        return None
