"""Core components for Gym Platform SDK.

Header policy, response classification, single-flight token refresh and
request execution shared by every service client.
"""

from __future__ import annotations

from .auth_policy import AuthHeaderPolicy, is_public_endpoint
from .classifier import AuthRetry, ResponseClassifier, Success, TerminalError
from .errors import ErrorFactory
from .http_executor import RequestExecutor
from .refresh import RefreshCoordinator, RefreshState
from .session import SessionTeardown
from .token_ops import RefreshTokenExchange

__all__ = [
    "AuthHeaderPolicy",
    "is_public_endpoint",
    "AuthRetry",
    "ResponseClassifier",
    "Success",
    "TerminalError",
    "ErrorFactory",
    "RequestExecutor",
    "RefreshCoordinator",
    "RefreshState",
    "SessionTeardown",
    "RefreshTokenExchange",
]
