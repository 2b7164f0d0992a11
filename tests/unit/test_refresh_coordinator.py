"""Unit tests for RefreshCoordinator.

Tests single-flight behaviour, FIFO release, failure teardown and the
bounded refresh timeout.
"""

from __future__ import annotations

import asyncio

import pytest

from fakes import RecordingTokenStore
from gym_platform_sdk.core.refresh import RefreshCoordinator, RefreshState
from gym_platform_sdk.core.session import SessionTeardown
from gym_platform_sdk.errors import SessionExpiredError, TokenRefreshError
from gym_platform_sdk.models import TokenPair

NEW_PAIR = TokenPair(access_token="tok2", refresh_token="ref2")


class GatedExchange:
    """Exchange that blocks until released and counts invocations."""

    def __init__(self, result: TokenPair | Exception = NEW_PAIR) -> None:
        self.result = result
        self.calls: list[str] = []
        self.gate = asyncio.Event()

    async def __call__(self, refresh_token: str) -> TokenPair:
        self.calls.append(refresh_token)
        await self.gate.wait()
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def make_coordinator(
    store: RecordingTokenStore,
    exchange: GatedExchange,
    *,
    timeout: float = 2.0,
    listener=None,
) -> RefreshCoordinator:
    return RefreshCoordinator(
        store,
        exchange,
        SessionTeardown(store, listener),
        timeout=timeout,
    )


async def wait_for_pending(coordinator: RefreshCoordinator, count: int) -> None:
    while coordinator.pending < count:
        await asyncio.sleep(0)


class TestSingleFlight:
    """Tests that concurrent callers share one exchange."""

    @pytest.mark.anyio
    async def test_concurrent_callers_share_one_exchange(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        coordinator = make_coordinator(token_store, exchange)

        tasks = [asyncio.create_task(coordinator.request_refresh()) for _ in range(5)]
        await wait_for_pending(coordinator, 5)
        assert coordinator.state is RefreshState.REFRESHING

        exchange.gate.set()
        results = await asyncio.gather(*tasks)

        assert exchange.calls == ["ref1"]
        assert coordinator.cycles == 1
        assert all(result == NEW_PAIR for result in results)
        assert await token_store.get_token() == "tok2"
        assert await token_store.get_refresh_token() == "ref2"
        assert token_store.store_calls == 1
        assert coordinator.state is RefreshState.IDLE
        assert coordinator.pending == 0

    @pytest.mark.anyio
    async def test_back_to_back_calls_make_one_exchange(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        exchange.gate.set()
        coordinator = make_coordinator(token_store, exchange)

        first = asyncio.create_task(coordinator.request_refresh())
        second = asyncio.create_task(coordinator.request_refresh())
        await asyncio.gather(first, second)

        assert len(exchange.calls) == 1

    @pytest.mark.anyio
    async def test_new_cycle_after_idle(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        exchange.gate.set()
        coordinator = make_coordinator(token_store, exchange)

        await coordinator.request_refresh()
        await coordinator.request_refresh()

        assert coordinator.cycles == 2
        assert exchange.calls == ["ref1", "ref2"]

    @pytest.mark.anyio
    async def test_waiters_released_in_fifo_order(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        coordinator = make_coordinator(token_store, exchange)
        order: list[int] = []

        async def caller(index: int) -> None:
            await coordinator.request_refresh()
            order.append(index)

        tasks = [asyncio.create_task(caller(i)) for i in range(4)]
        await wait_for_pending(coordinator, 4)
        exchange.gate.set()
        await asyncio.gather(*tasks)

        assert order == [0, 1, 2, 3]

    @pytest.mark.anyio
    async def test_cancelled_waiter_does_not_strand_others(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        coordinator = make_coordinator(token_store, exchange)

        initiator = asyncio.create_task(coordinator.request_refresh())
        follower = asyncio.create_task(coordinator.request_refresh())
        await wait_for_pending(coordinator, 2)

        initiator.cancel()
        await asyncio.sleep(0)
        exchange.gate.set()

        assert await follower == NEW_PAIR
        assert initiator.cancelled()
        assert len(exchange.calls) == 1


class TestRefreshFailure:
    """Tests that every failure ends the session exactly once."""

    @pytest.mark.anyio
    async def test_failure_releases_everyone_with_session_expired(
        self,
        token_store: RecordingTokenStore,
    ) -> None:
        notified: list[str] = []
        exchange = GatedExchange(TokenRefreshError("Refresh rejected: HTTP 400", status=400))
        coordinator = make_coordinator(
            token_store,
            exchange,
            listener=lambda: notified.append("expired"),
        )

        tasks = [asyncio.create_task(coordinator.request_refresh()) for _ in range(3)]
        await wait_for_pending(coordinator, 3)
        exchange.gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, SessionExpiredError) for r in results)
        assert all(r.status == 401 for r in results)
        assert len({id(r) for r in results}) == 3
        assert isinstance(results[0].__cause__, TokenRefreshError)
        assert token_store.clear_calls == 1
        assert notified == ["expired"]
        assert await token_store.get_token() is None
        assert coordinator.state is RefreshState.IDLE

    @pytest.mark.anyio
    async def test_tokens_cleared_before_release(self) -> None:
        events: list[str] = []

        class OrderedStore(RecordingTokenStore):
            async def clear_auth_data(self) -> None:
                events.append("clear")
                await super().clear_auth_data()

        store = OrderedStore("tok1", "ref1")
        exchange = GatedExchange(TokenRefreshError())
        coordinator = make_coordinator(store, exchange)

        async def caller() -> None:
            try:
                await coordinator.request_refresh()
            except SessionExpiredError:
                events.append(f"released:{await store.get_token()}")

        tasks = [asyncio.create_task(caller()) for _ in range(2)]
        await wait_for_pending(coordinator, 2)
        exchange.gate.set()
        await asyncio.gather(*tasks)

        assert events == ["clear", "released:None", "released:None"]

    @pytest.mark.anyio
    async def test_missing_refresh_token_fails_without_exchange(self) -> None:
        store = RecordingTokenStore("tok1", None)
        exchange = GatedExchange()
        coordinator = make_coordinator(store, exchange)

        with pytest.raises(SessionExpiredError) as exc_info:
            await coordinator.request_refresh()

        assert exchange.calls == []
        assert store.clear_calls == 1
        assert "No refresh token" in exc_info.value.details["reason"]

    @pytest.mark.anyio
    async def test_store_write_failure_is_refresh_failure(self) -> None:
        class ReadOnlyStore(RecordingTokenStore):
            async def store_tokens(self, access_token: str, refresh_token: str) -> None:
                raise OSError("disk full")

        store = ReadOnlyStore("tok1", "ref1")
        exchange = GatedExchange()
        exchange.gate.set()
        coordinator = make_coordinator(store, exchange)

        with pytest.raises(SessionExpiredError):
            await coordinator.request_refresh()

        assert store.clear_calls == 1

    @pytest.mark.anyio
    async def test_hung_exchange_times_out(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        coordinator = make_coordinator(token_store, exchange, timeout=0.05)

        tasks = [asyncio.create_task(coordinator.request_refresh()) for _ in range(3)]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, SessionExpiredError) for r in results)
        assert results[0].details["reason"] == "refresh timed out"
        assert token_store.clear_calls == 1
        assert coordinator.state is RefreshState.IDLE

    @pytest.mark.anyio
    async def test_listener_failure_does_not_block_release(self, token_store: RecordingTokenStore) -> None:
        def listener() -> None:
            raise RuntimeError("navigation failed")

        exchange = GatedExchange(TokenRefreshError())
        exchange.gate.set()
        coordinator = make_coordinator(token_store, exchange, listener=listener)

        with pytest.raises(SessionExpiredError):
            await coordinator.request_refresh()

        assert token_store.clear_calls == 1

    @pytest.mark.anyio
    async def test_async_listener_is_awaited(self, token_store: RecordingTokenStore) -> None:
        notified: list[str] = []

        async def listener() -> None:
            notified.append("expired")

        exchange = GatedExchange(TokenRefreshError())
        exchange.gate.set()
        coordinator = make_coordinator(token_store, exchange, listener=listener)

        with pytest.raises(SessionExpiredError):
            await coordinator.request_refresh()

        assert notified == ["expired"]


class TestClose:
    """Tests for shutting down with a refresh in flight."""

    @pytest.mark.anyio
    async def test_aclose_releases_waiters_without_clearing(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        coordinator = make_coordinator(token_store, exchange)

        waiter = asyncio.create_task(coordinator.request_refresh())
        await wait_for_pending(coordinator, 1)
        await coordinator.aclose()

        with pytest.raises(SessionExpiredError) as exc_info:
            await waiter
        assert exc_info.value.details["reason"] == "refresh cancelled"
        assert token_store.clear_calls == 0
        assert coordinator.state is RefreshState.IDLE

    @pytest.mark.anyio
    async def test_aclose_when_idle_is_noop(self, token_store: RecordingTokenStore) -> None:
        coordinator = make_coordinator(token_store, GatedExchange())

        await coordinator.aclose()

        assert coordinator.state is RefreshState.IDLE

    @pytest.mark.anyio
    async def test_aclose_before_cycle_first_step(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        coordinator = make_coordinator(token_store, exchange)

        waiter = asyncio.create_task(coordinator.request_refresh())
        await asyncio.sleep(0)
        assert coordinator.state is RefreshState.REFRESHING
        await coordinator.aclose()

        with pytest.raises(SessionExpiredError) as exc_info:
            await asyncio.wait_for(waiter, 1.0)
        assert exc_info.value.details["reason"] == "refresh cancelled"
        assert exchange.calls == []
        assert coordinator.state is RefreshState.IDLE
        assert coordinator.pending == 0

    @pytest.mark.anyio
    async def test_aclose_during_teardown_releases_waiters(self, token_store: RecordingTokenStore) -> None:
        listener_started = asyncio.Event()

        async def listener() -> None:
            listener_started.set()
            await asyncio.sleep(10)

        exchange = GatedExchange(TokenRefreshError("Refresh rejected: HTTP 400", status=400))
        exchange.gate.set()
        coordinator = make_coordinator(token_store, exchange, listener=listener)

        waiters = [asyncio.create_task(coordinator.request_refresh()) for _ in range(2)]
        await asyncio.wait_for(listener_started.wait(), 1.0)
        await coordinator.aclose()

        results = await asyncio.wait_for(asyncio.gather(*waiters, return_exceptions=True), 1.0)
        assert all(isinstance(r, SessionExpiredError) for r in results)
        assert results[0].details["reason"] == "Refresh rejected: HTTP 400"
        assert isinstance(results[0].__cause__, TokenRefreshError)
        assert token_store.clear_calls == 1
        assert coordinator.state is RefreshState.IDLE
        assert coordinator.pending == 0

    @pytest.mark.anyio
    async def test_new_cycle_after_aclose(self, token_store: RecordingTokenStore) -> None:
        exchange = GatedExchange()
        coordinator = make_coordinator(token_store, exchange)

        waiter = asyncio.create_task(coordinator.request_refresh())
        await asyncio.sleep(0)
        await coordinator.aclose()
        with pytest.raises(SessionExpiredError):
            await waiter

        exchange.gate.set()
        assert await coordinator.request_refresh() == NEW_PAIR
        assert coordinator.cycles == 2
