"""Readiness layer: decide when a Service and its Endpoints are usable."""

from service_await.readiness.awaiter import (
    ServiceInitAwaiter,
    await_service_init,
    read_service_init,
)
from service_await.readiness.errors import (
    AwaitCancelledError,
    AwaitError,
    AwaitSetupError,
    AwaitTimeoutError,
    InitializationError,
)
from service_await.readiness.signals import CancellationSignal
from service_await.readiness.state import (
    AwaitConfig,
    DiagnosticsSink,
    LoggingDiagnostics,
    ReadinessState,
    Severity,
)

__all__ = [
    "AwaitCancelledError",
    "AwaitConfig",
    "AwaitError",
    "AwaitSetupError",
    "AwaitTimeoutError",
    "CancellationSignal",
    "DiagnosticsSink",
    "InitializationError",
    "LoggingDiagnostics",
    "ReadinessState",
    "ServiceInitAwaiter",
    "Severity",
    "await_service_init",
    "read_service_init",
]
