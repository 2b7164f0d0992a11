"""Gym Platform SDK clients.

``GymApiClient`` talks to one backend service. ``GymPlatform`` owns the
token store and the refresh coordinator and hands out per-service clients
that share them, so one refresh serves every service at once.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Self

import httpx
import jwt

from .config import GymPlatformConfig, ServiceName
from .core.auth_policy import AuthHeaderPolicy
from .core.classifier import ResponseClassifier
from .core.http_executor import RequestExecutor
from .core.refresh import RefreshCoordinator
from .core.session import SessionExpiredListener, SessionTeardown
from .core.token_ops import RefreshTokenExchange
from .errors import SessionExpiredError
from .http import create_async_http_client
from .models import ApiResponse, RequestDescriptor, TokenPair
from .telemetry import get_logger, traced_async
from .token_store import InMemoryTokenStore, read_access_token

if TYPE_CHECKING:
    from .token_store import TokenStore


def _build_coordinator(
    config: GymPlatformConfig,
    token_store: TokenStore,
    http: httpx.AsyncClient,
    teardown: SessionTeardown,
) -> RefreshCoordinator:
    return RefreshCoordinator(
        token_store,
        RefreshTokenExchange(http, config.refresh_url),
        teardown,
        timeout=config.refresh_timeout,
    )


class GymApiClient:
    """Authenticated JSON client for one backend service."""

    def __init__(
        self,
        config: GymPlatformConfig,
        token_store: TokenStore,
        *,
        service: ServiceName | str = ServiceName.IDENTITY,
        coordinator: RefreshCoordinator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        on_session_expired: SessionExpiredListener | None = None,
    ) -> None:
        """Initialize service client.

        Args:
            config: SDK configuration.
            token_store: Access/refresh token storage.
            service: Backend service this client talks to.
            coordinator: Shared refresh coordinator; a private one is
                created when omitted.
            transport: Optional httpx transport override.
            on_session_expired: Called after credentials are cleared
                because the session could not be recovered.
        """
        self.config = config
        self.service = ServiceName(service)
        self.base_url = config.service_url(self.service)
        self._token_store = token_store
        self._http = create_async_http_client(config, self.base_url, transport=transport)
        self._teardown = SessionTeardown(token_store, on_session_expired)
        self._policy = AuthHeaderPolicy(token_store, config.public_endpoints)

        self._owns_coordinator = coordinator is None
        self._coordinator = coordinator or _build_coordinator(
            config, token_store, self._http, self._teardown
        )
        self._executor = RequestExecutor(
            self._http,
            self._policy,
            ResponseClassifier(self._policy.is_public),
            self._coordinator,
            self._teardown,
            base_url=self.base_url,
            service=self.service.value,
        )
        self._logger = get_logger().bind(service=self.service.value)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_coordinator:
            await self._coordinator.aclose()
        await self._http.aclose()

    @property
    def coordinator(self) -> RefreshCoordinator:
        """Get the refresh coordinator used by this client."""
        return self._coordinator

    def build_request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
        files: Any = None,
        form: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> RequestDescriptor:
        """Build an immutable request descriptor.

        Args:
            method: HTTP method.
            endpoint: Path relative to the service base URL; may carry a
                query string.
            params: Extra query parameters.
            body: JSON body.
            files: Multipart files, in any form httpx accepts.
            form: Multipart form fields sent alongside ``files``.
            headers: Extra headers; they override the SDK defaults.

        Returns:
            Request descriptor.
        """
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        path, _, query_string = endpoint.partition("?")
        # params= replaces the URL query in httpx, so both go into params
        query = httpx.QueryParams(query_string)
        if params:
            query = query.merge(params)
        return RequestDescriptor(
            method=method.upper(),
            url=f"{self.base_url}{path}",
            endpoint_path=path,
            headers=dict(headers or {}),
            params=list(query.multi_items()) or None,
            body=body,
            files=files,
            form=form,
        )

    async def request(self, method: str, endpoint: str, **kwargs: Any) -> ApiResponse:
        """Send a request through the executor.

        Raises:
            ApiError: On any failure; SessionExpiredError when the user
                has to log in again.
        """
        return await self._executor.send(self.build_request(method, endpoint, **kwargs))

    async def get(
        self,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        return await self.request("GET", endpoint, params=params, headers=headers)

    async def post(
        self,
        endpoint: str,
        data: Any = None,
        *,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        return await self.request("POST", endpoint, body=data, headers=headers)

    async def put(
        self,
        endpoint: str,
        data: Any = None,
        *,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        return await self.request("PUT", endpoint, body=data, headers=headers)

    async def patch(
        self,
        endpoint: str,
        data: Any = None,
        *,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        return await self.request("PATCH", endpoint, body=data, headers=headers)

    async def delete(
        self,
        endpoint: str,
        data: Any = None,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        return await self.request("DELETE", endpoint, body=data, params=params, headers=headers)

    async def upload(
        self,
        endpoint: str,
        files: Any,
        *,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        """POST a multipart body; httpx sets the Content-Type boundary."""
        return await self.request("POST", endpoint, files=files, form=data, headers=headers)

    @traced_async("is_authenticated")
    async def is_authenticated(self) -> bool:
        """Check whether a usable session exists.

        An access token whose ``exp`` claim has passed is refreshed through
        the shared coordinator. The signature is not verified here; the
        backend does that.

        Returns:
            True if a non-expired access token is (now) stored.
        """
        token = await read_access_token(self._token_store)
        if not token:
            return False

        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.exceptions.PyJWTError as e:
            self._logger.debug("Access token is not a decodable JWT", error=str(e))
            return False

        exp = claims.get("exp")
        if exp is None:
            return True
        try:
            expires_at = float(exp)
        except (TypeError, ValueError):
            self._logger.debug("Access token has a malformed exp claim", exp=repr(exp))
            return False
        if expires_at > time.time():
            return True

        try:
            await self._coordinator.request_refresh()
        except SessionExpiredError:
            return False
        return True


class GymPlatform:
    """Entry point holding one token store and one refresh coordinator."""

    def __init__(
        self,
        config: GymPlatformConfig,
        token_store: TokenStore | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        on_session_expired: SessionExpiredListener | None = None,
    ) -> None:
        """Initialize platform clients.

        Args:
            config: SDK configuration.
            token_store: Token storage; in-memory when omitted.
            transport: Optional httpx transport override for every client.
            on_session_expired: Called once per unrecoverable session.
        """
        self.config = config
        self.token_store: TokenStore = token_store or InMemoryTokenStore()
        self._transport = transport
        self._on_session_expired = on_session_expired
        self._refresh_http = create_async_http_client(
            config, config.identity_url_str, transport=transport
        )
        self._coordinator = _build_coordinator(
            config,
            self.token_store,
            self._refresh_http,
            SessionTeardown(self.token_store, on_session_expired),
        )
        self._clients: dict[ServiceName, GymApiClient] = {}

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Cancel any in-flight refresh and close every HTTP client."""
        await self._coordinator.aclose()
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
        await self._refresh_http.aclose()

    @property
    def coordinator(self) -> RefreshCoordinator:
        """Get the shared refresh coordinator."""
        return self._coordinator

    def client(self, service: ServiceName | str) -> GymApiClient:
        """Get the client for a backend service, creating it on first use."""
        service = ServiceName(service)
        if service not in self._clients:
            self._clients[service] = GymApiClient(
                self.config,
                self.token_store,
                service=service,
                coordinator=self._coordinator,
                transport=self._transport,
                on_session_expired=self._on_session_expired,
            )
        return self._clients[service]

    @property
    def identity(self) -> GymApiClient:
        return self.client(ServiceName.IDENTITY)

    @property
    def member(self) -> GymApiClient:
        return self.client(ServiceName.MEMBER)

    @property
    def schedule(self) -> GymApiClient:
        return self.client(ServiceName.SCHEDULE)

    @property
    def billing(self) -> GymApiClient:
        return self.client(ServiceName.BILLING)

    async def sign_in(self, tokens: TokenPair) -> None:
        """Store the pair obtained from an explicit login flow."""
        await self.token_store.store_tokens(tokens.access_token, tokens.refresh_token)

    async def sign_out(self) -> None:
        """Forget the stored credentials."""
        await self.token_store.clear_auth_data()

    async def is_authenticated(self) -> bool:
        """Check whether a usable session exists, refreshing if expired."""
        return await self.identity.is_authenticated()
