"""Logging and tracing for Gym Platform SDK.

structlog carries log events and OpenTelemetry spans wrap every HTTP
attempt and every refresh cycle. Both stay quiet until the host
application configures them.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Final, ParamSpec, TypeVar

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .errors import ApiError

if TYPE_CHECKING:
    from collections.abc import Generator, Iterator

    from .config import TelemetryConfig

P = ParamSpec("P")
T = TypeVar("T")

SDK_NAME: Final = "gym-platform-sdk"
SDK_VERSION: Final = "0.1.0"

LOG_LEVELS: Final[dict[str, int]] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

_tracer: trace.Tracer | None = None
_logger: structlog.BoundLogger | None = None


def get_tracer() -> trace.Tracer:
    """Get the SDK tracer, falling back to the global provider."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(SDK_NAME, SDK_VERSION)
    return _tracer


def get_logger() -> structlog.BoundLogger:
    """Get the SDK logger."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(SDK_NAME)
    return _logger


def log_level_to_int(level: str) -> int:
    """Map a level name to its numeric value; unknown names mean INFO."""
    return LOG_LEVELS.get(level.upper(), LOG_LEVELS["INFO"])


def configure_telemetry(config: TelemetryConfig) -> None:
    """Apply telemetry settings process-wide.

    With ``enabled=False`` tracing becomes a no-op and structlog keeps
    whatever configuration the host application set up. With
    ``trace_requests=False`` only logging is configured.

    Args:
        config: Telemetry configuration.
    """
    global _tracer, _logger

    if config.enabled and config.trace_requests:
        _tracer = trace.get_tracer(config.service_name, SDK_VERSION)
    else:
        _tracer = trace.NoOpTracer()

    if not config.enabled:
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            log_level_to_int(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
    _logger = structlog.get_logger(config.service_name)


@contextmanager
def request_context(*, service: str, method: str, endpoint: str) -> Iterator[None]:
    """Bind the request being executed to every log event inside the block.

    Refresh events logged on behalf of a request carry the service and
    endpoint that triggered them.
    """
    with structlog.contextvars.bound_contextvars(
        service=service,
        method=method,
        endpoint=endpoint,
    ):
        yield


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run a block inside a span.

    SDK errors leave their error code and HTTP status on the span.

    Args:
        name: Span name.
        attributes: Optional span attributes.

    Yields:
        The active span.
    """
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            if isinstance(e, ApiError):
                span.set_attribute("gym.error.code", e.code)
                if e.status is not None:
                    span.set_attribute("http.status_code", e.status)
            raise


def traced_async(
    name: str | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator running an async function inside a span.

    Args:
        name: Span name; defaults to the function name.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        span_name = name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with trace_operation(span_name):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
