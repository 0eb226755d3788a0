"""Readiness state and the collaborators an awaiter is configured with."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

from service_await.observation.models import (
    EndpointsResource,
    EventSummary,
    ServiceResource,
    WatchEvent,
)
from service_await.readiness.errors import NO_ADDRESS_MESSAGE, NO_TARGETS_MESSAGE
from service_await.readiness.signals import CancellationSignal

logger = logging.getLogger(__name__)

DIAGNOSTICS_LOGGER = "service_await.diagnostics"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"


@runtime_checkable
class DiagnosticsSink(Protocol):
    """Receives human-readable progress messages about one resource."""

    def log(self, severity: Severity, urn: str, message: str) -> None: ...


class LoggingDiagnostics:
    """Diagnostics sink writing to the ``service_await.diagnostics`` logger."""

    _levels = {Severity.INFO: logging.INFO, Severity.WARNING: logging.WARNING}

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logging.getLogger(DIAGNOSTICS_LOGGER)

    def log(self, severity: Severity, urn: str, message: str) -> None:
        self._logger.log(self._levels[severity], "%s: %s", urn, message)


class WatchSource(Protocol):
    """A live, non-restartable stream of change events that can be released."""

    def __iter__(self) -> Iterator[WatchEvent]: ...

    def stop(self) -> None: ...


class ResourceClient(Protocol):
    """Watch and snapshot access to Services and Endpoints in one namespace."""

    def watch_services(self) -> WatchSource: ...

    def watch_endpoints(self) -> WatchSource: ...

    def get_service(self, name: str) -> ServiceResource: ...

    def list_endpoints(self) -> list[EndpointsResource]: ...


class WarningLookup(Protocol):
    def __call__(self, namespace: str, name: str, kind: str, limit: int) -> Sequence[EventSummary]: ...


@dataclass(frozen=True)
class AwaitConfig:
    """Identity of the awaited Service and handles to external collaborators.

    ``inputs`` is the declared Service; its ``spec.type`` decides whether an
    external address is required. The live objects only ever feed the
    readiness flags.
    """

    inputs: ServiceResource
    client: ResourceClient
    diagnostics: DiagnosticsSink | None = None
    warnings: WarningLookup | None = None
    warning_limit: int = 3
    cancellation: CancellationSignal = field(default_factory=CancellationSignal)
    urn: str | None = None

    @property
    def name(self) -> str:
        return self.inputs.name

    @property
    def namespace(self) -> str:
        return self.inputs.namespace or "default"

    @property
    def resource_urn(self) -> str:
        return self.urn or f"core/v1/Service:{self.namespace}/{self.name}"

    def log(self, severity: Severity, message: str) -> None:
        """Best-effort delivery to the diagnostics sink."""
        if self.diagnostics is None:
            return
        try:
            self.diagnostics.log(severity, self.resource_urn, message)
        except Exception:
            logger.debug("Diagnostics sink failed for %s", self.resource_urn, exc_info=True)


@dataclass
class ReadinessState:
    """Flags for one await operation. Only the loop's thread touches them."""

    config: AwaitConfig
    service_ready: bool = False
    endpoints_ready: bool = False
    endpoints_settled: bool = False

    def succeeded(self) -> bool:
        return self.service_ready and self.endpoints_ready and self.endpoints_settled

    def ready_ignoring_settle(self) -> bool:
        """Check applied on cancellation and timeout, where settling is not required."""
        return self.service_ready and self.endpoints_ready

    def error_messages(self) -> list[str]:
        messages = []
        if not self.endpoints_ready:
            messages.append(NO_TARGETS_MESSAGE)
        if self.config.inputs.requires_external_address and not self.service_ready:
            messages.append(NO_ADDRESS_MESSAGE)
        return messages
