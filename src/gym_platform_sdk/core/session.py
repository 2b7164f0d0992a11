"""Session teardown for Gym Platform SDK.

Clears stored credentials and notifies the host application, which is
expected to send the user back to a login flow.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Awaitable, Callable

from ..telemetry import get_logger

if TYPE_CHECKING:
    from ..token_store import TokenStore

SessionExpiredListener = Callable[[], Awaitable[None] | None]


class SessionTeardown:
    """Ends the current session."""

    def __init__(
        self,
        token_store: TokenStore,
        listener: SessionExpiredListener | None = None,
    ) -> None:
        self._token_store = token_store
        self._listener = listener
        self._logger = get_logger()

    async def __call__(self, reason: str) -> None:
        """Clear credentials, then notify the listener.

        Failures in either step are logged; the caller still receives its
        session-expired error.
        """
        self._logger.info("Ending session", reason=reason)
        try:
            await self._token_store.clear_auth_data()
        except Exception as e:
            self._logger.error("Failed to clear auth data", reason=reason, error=str(e))

        if self._listener is None:
            return
        try:
            result = self._listener()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._logger.error("Session expired listener failed", reason=reason, error=str(e))
