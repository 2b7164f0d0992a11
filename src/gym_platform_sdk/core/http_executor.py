"""Request execution for Gym Platform SDK.

Orchestrates one logical call: headers, send, classify, and on an expired
access token a single-flight refresh followed by exactly one replay.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from ..errors import SessionExpiredError
from ..telemetry import get_logger, request_context, trace_operation
from .classifier import AuthRetry, Success, TerminalError
from .errors import ErrorFactory

if TYPE_CHECKING:
    from ..models import ApiResponse, RequestDescriptor
    from .auth_policy import AuthHeaderPolicy
    from .classifier import Outcome, ResponseClassifier
    from .refresh import RefreshCoordinator
    from .session import SessionTeardown


class RequestExecutor:
    """Async request executor with refresh-and-replay on 401."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: AuthHeaderPolicy,
        classifier: ResponseClassifier,
        coordinator: RefreshCoordinator,
        teardown: SessionTeardown,
        *,
        base_url: str,
        service: str = "identity",
    ) -> None:
        """Initialize request executor.

        Args:
            client: Async HTTP client.
            policy: Header policy.
            classifier: Response classifier.
            coordinator: Shared refresh coordinator.
            teardown: Ends the session after an unrecoverable 401.
            base_url: Service base URL, for diagnostics.
            service: Service name bound to log events.
        """
        self._client = client
        self._policy = policy
        self._classifier = classifier
        self._coordinator = coordinator
        self._teardown = teardown
        self._base_url = base_url
        self._service = service
        self._logger = get_logger()

    async def send(self, descriptor: RequestDescriptor) -> ApiResponse:
        """Execute a request.

        Args:
            descriptor: Request to send.

        Returns:
            Normalized success payload.

        Raises:
            SessionExpiredError: If the token could not be refreshed, or the
                replay was still unauthorized.
            NetworkError: If no response was received.
            HttpError: On any other non-2xx response.
        """
        with request_context(
            service=self._service,
            method=descriptor.method,
            endpoint=descriptor.endpoint_path,
        ):
            outcome = await self._attempt(descriptor, replay_available=True)

            if isinstance(outcome, AuthRetry):
                with trace_operation("token_refresh_wait", attributes={"endpoint": descriptor.endpoint_path}):
                    tokens = await self._coordinator.request_refresh()
                return await self._replay(descriptor, tokens.access_token)

            return self._unwrap(outcome, descriptor)

    async def _replay(self, descriptor: RequestDescriptor, access_token: str) -> ApiResponse:
        """Send the request once more with the refreshed token.

        A 401 here ends the session; there is no path back to refresh.
        """
        outcome = await self._attempt(
            descriptor,
            replay_available=False,
            access_token=access_token,
        )
        if isinstance(outcome, TerminalError) and outcome.error.status == 401:
            self._logger.warning(
                "Replayed request still unauthorized",
                endpoint=descriptor.endpoint_path,
            )
            await self._teardown("replay unauthorized")
            raise ErrorFactory.session_expired("replay unauthorized")
        return self._unwrap(outcome, descriptor)

    async def _attempt(
        self,
        descriptor: RequestDescriptor,
        *,
        replay_available: bool,
        access_token: str | None = None,
    ) -> Outcome:
        """Send a single HTTP request and classify the response."""
        headers = await self._policy.headers_for(
            descriptor.endpoint_path,
            access_token=access_token,
            multipart=descriptor.is_multipart,
        )
        headers.update(descriptor.headers)

        with trace_operation(
            "http_request",
            attributes={
                "http.method": descriptor.method,
                "http.url": descriptor.url,
                "replay": not replay_available,
            },
        ):
            try:
                response = await self._client.request(
                    descriptor.method,
                    descriptor.url,
                    headers=headers,
                    **descriptor.request_kwargs(),
                )
            except httpx.HTTPError as e:
                error = ErrorFactory.from_transport_error(e)
                self._logger.error(
                    "Request failed",
                    endpoint=descriptor.endpoint_path,
                    url=descriptor.url,
                    error=error.message,
                )
                raise error from e

        return self._classifier.classify(
            response,
            descriptor.endpoint_path,
            replay_available=replay_available,
        )

    def _unwrap(self, outcome: Outcome, descriptor: RequestDescriptor) -> ApiResponse:
        if isinstance(outcome, Success):
            return outcome.response

        if isinstance(outcome, TerminalError):
            if outcome.diagnostic:
                self._logger.warning(
                    "Backend service degraded",
                    diagnostic=outcome.diagnostic,
                    status=outcome.error.status,
                    endpoint=descriptor.endpoint_path,
                    url=descriptor.url,
                    base_url=self._base_url,
                    retryable=ErrorFactory.is_retryable(outcome.error),
                )
            raise outcome.error

        # AuthRetry is only produced when a replay is available
        raise SessionExpiredError(reason="unexpected auth retry")
