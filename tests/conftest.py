"""
Shared test fixtures for Gym Platform SDK tests.

Provides configuration, token stores and a fake backend served through
httpx.MockTransport.
"""

import pytest

from fakes import FakeBackend, RecordingTokenStore
from gym_platform_sdk.config import GymPlatformConfig, TelemetryConfig


@pytest.fixture
def anyio_backend() -> str:
    """Run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def base_config() -> GymPlatformConfig:
    """Provide a basic SDK configuration for testing."""
    return GymPlatformConfig(
        identity_url="https://identity.gym.test",
        member_url="https://member.gym.test",
        refresh_timeout=2.0,
    )


@pytest.fixture
def telemetry_config() -> TelemetryConfig:
    """Provide telemetry configuration for testing."""
    return TelemetryConfig(
        enabled=False,
        service_name="test-sdk",
        trace_requests=False,
    )


@pytest.fixture
def token_store() -> RecordingTokenStore:
    """Provide a store holding a stale access token and a refresh token."""
    return RecordingTokenStore("tok1", "ref1")


@pytest.fixture
def backend() -> FakeBackend:
    """Provide an empty fake backend."""
    return FakeBackend()
