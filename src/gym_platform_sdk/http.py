"""HTTP transport setup for Gym Platform SDK.

One ``httpx.AsyncClient`` per backend service, plus one for the refresh
endpoint. Clients never follow redirects and never retry; a request is
sent exactly once per attempt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .telemetry import get_logger

if TYPE_CHECKING:
    from .config import GymPlatformConfig


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    get_logger().debug(
        "HTTP response",
        method=request.method,
        url=str(request.url),
        status=response.status_code,
    )


def create_async_http_client(
    config: GymPlatformConfig,
    base_url: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the async client for one service.

    Args:
        config: SDK configuration.
        base_url: Base URL of the target service.
        transport: Optional transport override (tests, proxies).

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
        limits=httpx.Limits(
            max_connections=config.max_connections,
            max_keepalive_connections=config.max_keepalive_connections,
        ),
        headers={
            "User-Agent": config.user_agent,
            "Accept": "application/json",
        },
        event_hooks={"response": [_log_response]},
        follow_redirects=False,
        transport=transport,
    )
