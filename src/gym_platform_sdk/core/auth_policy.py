"""Authorization header policy for Gym Platform SDK.

Decides per endpoint path whether a bearer token is attached. Public
endpoints are matched by substring against an ordered allowlist, so any
path containing a public fragment is treated as public.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..config import DEFAULT_PUBLIC_ENDPOINTS
from ..token_store import read_access_token

if TYPE_CHECKING:
    from ..token_store import TokenStore

JSON_CONTENT_TYPE = "application/json"


def is_public_endpoint(
    endpoint_path: str,
    public_endpoints: Iterable[str] = DEFAULT_PUBLIC_ENDPOINTS,
) -> bool:
    """Check whether a path is exempt from authentication.

    Args:
        endpoint_path: Path without base URL or query string.
        public_endpoints: Allowlisted path fragments.

    Returns:
        True if any fragment occurs anywhere in the path.
    """
    return any(fragment in endpoint_path for fragment in public_endpoints)


class AuthHeaderPolicy:
    """Builds request headers for an endpoint path.

    Never raises: a missing or unreadable access token just means the
    request goes out without ``Authorization`` and fails downstream.
    """

    def __init__(
        self,
        token_store: TokenStore,
        public_endpoints: Iterable[str] = DEFAULT_PUBLIC_ENDPOINTS,
    ) -> None:
        """Initialize header policy.

        Args:
            token_store: Source of the current access token.
            public_endpoints: Allowlisted path fragments.
        """
        self._token_store = token_store
        self._public_endpoints = tuple(public_endpoints)

    @property
    def public_endpoints(self) -> tuple[str, ...]:
        """Get the public-endpoint allowlist."""
        return self._public_endpoints

    def is_public(self, endpoint_path: str) -> bool:
        """Check whether a path is on the public allowlist."""
        return is_public_endpoint(endpoint_path, self._public_endpoints)

    async def headers_for(
        self,
        endpoint_path: str,
        *,
        access_token: str | None = None,
        multipart: bool = False,
    ) -> dict[str, str]:
        """Build headers for a request.

        Args:
            endpoint_path: Path without base URL or query string.
            access_token: Token to use instead of the stored one (replays).
            multipart: Omit the JSON Content-Type for multipart bodies.

        Returns:
            Headers dictionary.
        """
        headers: dict[str, str] = {}
        if not multipart:
            headers["Content-Type"] = JSON_CONTENT_TYPE

        if self.is_public(endpoint_path):
            return headers

        token = access_token or await read_access_token(self._token_store)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers
