"""Single-flight token refresh for Gym Platform SDK.

Any number of requests may fail with 401 at the same time; exactly one
refresh-token exchange runs on their behalf and every waiter is released
with its outcome.

State machine::

    IDLE --request_refresh()--> REFRESHING --cycle done--> IDLE

The check-and-transition in ``request_refresh`` runs before its first
``await``, so on a single event loop no lock is needed.
"""

from __future__ import annotations

import asyncio
from collections import deque
from enum import StrEnum
from typing import TYPE_CHECKING, Awaitable, Callable

from ..errors import SessionExpiredError, TokenRefreshError
from ..models import TokenPair
from ..telemetry import get_logger, trace_operation
from ..token_store import read_refresh_token

if TYPE_CHECKING:
    from ..token_store import TokenStore
    from .session import SessionTeardown

RefreshExchange = Callable[[str], Awaitable[TokenPair]]


class RefreshState(StrEnum):
    """Refresh coordinator states."""

    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshCoordinator:
    """Coordinates one refresh exchange for all concurrent callers.

    The exchange runs in its own task, so a cancelled caller never strands
    the others waiting on the same cycle.
    """

    def __init__(
        self,
        token_store: TokenStore,
        exchange: RefreshExchange,
        teardown: SessionTeardown,
        *,
        timeout: float = 15.0,
    ) -> None:
        """Initialize refresh coordinator.

        Args:
            token_store: Source of the refresh token, sink for the new pair.
            exchange: Performs one refresh-token exchange.
            teardown: Ends the session when a refresh fails.
            timeout: Upper bound in seconds for one exchange.
        """
        self._token_store = token_store
        self._exchange = exchange
        self._teardown = teardown
        self._timeout = timeout

        self._state = RefreshState.IDLE
        self._subscribers: deque[asyncio.Future[TokenPair]] = deque()
        self._cycle: asyncio.Task[None] | None = None
        self._cycles = 0
        self._logger = get_logger()

    @property
    def state(self) -> RefreshState:
        """Get current refresh state."""
        return self._state

    @property
    def pending(self) -> int:
        """Number of callers waiting on the current cycle."""
        return len(self._subscribers)

    @property
    def cycles(self) -> int:
        """Number of refresh cycles started so far."""
        return self._cycles

    async def request_refresh(self) -> TokenPair:
        """Wait for a refreshed token pair, starting a refresh if idle.

        Returns:
            The pair produced by the cycle this call joined.

        Raises:
            SessionExpiredError: If that cycle failed for any reason.
        """
        waiter: asyncio.Future[TokenPair] = asyncio.get_running_loop().create_future()
        self._subscribers.append(waiter)

        if self._state is RefreshState.IDLE:
            self._state = RefreshState.REFRESHING
            self._cycles += 1
            self._logger.info("Token refresh started", cycle=self._cycles)
            cycle = asyncio.create_task(self._run_cycle())
            cycle.add_done_callback(self._on_cycle_done)
            self._cycle = cycle
        else:
            self._logger.debug("Joined in-flight token refresh", pending=len(self._subscribers))

        return await waiter

    async def aclose(self) -> None:
        """Cancel an in-flight cycle; its waiters fail with SessionExpiredError."""
        cycle = self._cycle
        if cycle is None or cycle.done():
            return

        cycle.cancel()
        try:
            await cycle
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        if self._cycle is cycle:
            self._release(reason="refresh cancelled")

    async def _run_cycle(self) -> None:
        try:
            with trace_operation("token_refresh", attributes={"cycle": self._cycles}):
                async with asyncio.timeout(self._timeout):
                    tokens = await self._exchange_once()
        except asyncio.CancelledError:
            self._release(reason="refresh cancelled")
            raise
        except Exception as e:
            reason = "refresh timed out" if isinstance(e, TimeoutError) else str(e)
            self._logger.warning("Token refresh failed", cycle=self._cycles, reason=reason)
            try:
                await self._teardown(reason)
            finally:
                self._release(reason=reason, cause=e)
        else:
            self._logger.info("Token refresh succeeded", cycle=self._cycles)
            self._release(tokens=tokens)

    def _on_cycle_done(self, cycle: asyncio.Task[None]) -> None:
        # A task cancelled before its first step never reaches _run_cycle's handlers.
        if self._cycle is cycle:
            self._release(reason="refresh cancelled")

    async def _exchange_once(self) -> TokenPair:
        refresh_token = await read_refresh_token(self._token_store)
        if not refresh_token:
            raise TokenRefreshError("No refresh token available")

        tokens = await self._exchange(refresh_token)
        await self._token_store.store_tokens(tokens.access_token, tokens.refresh_token)
        return tokens

    def _release(
        self,
        *,
        tokens: TokenPair | None = None,
        reason: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        """Return to IDLE and resolve every waiter in FIFO order.

        Each failed waiter gets its own SessionExpiredError instance.
        """
        waiters, self._subscribers = self._subscribers, deque()
        self._state = RefreshState.IDLE
        self._cycle = None

        released = 0
        for waiter in waiters:
            if waiter.done():
                continue
            if tokens is not None:
                waiter.set_result(tokens)
            else:
                error = SessionExpiredError(reason=reason)
                error.__cause__ = cause
                waiter.set_exception(error)
            released += 1

        self._logger.debug("Released refresh waiters", released=released, success=tokens is not None)
