"""Failures reported by the Service awaiter."""

from __future__ import annotations

from service_await.observation.models import EventSummary, ServiceResource

NO_TARGETS_MESSAGE = "Service does not target any Pods"
NO_ADDRESS_MESSAGE = "Service was not allocated an IP address"


class AwaitError(Exception):
    """Base class: the Service pair did not reach a ready state."""

    headline = "Service '{name}' is not ready"

    def __init__(
        self,
        object_name: str,
        sub_errors: list[str] | None = None,
        warnings: list[EventSummary] | None = None,
    ) -> None:
        self.object_name = object_name
        self.sub_errors = list(sub_errors or [])
        self.warnings = list(warnings or [])
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [self.headline.format(name=self.object_name)]
        lines.extend(f"* {msg}" for msg in self.sub_errors)
        lines.extend(w.format() for w in self.warnings)
        return "\n".join(lines)


class AwaitSetupError(AwaitError):
    """A watch subscription could not be created; the loop never started."""

    def __init__(self, object_name: str, what: str) -> None:
        self.headline = f"Could not set up {what} '{{name}}'"
        super().__init__(object_name)


class AwaitTimeoutError(AwaitError):
    headline = "Timeout occurred for '{name}'"


class AwaitCancelledError(AwaitError):
    headline = "Resource operation was cancelled for '{name}'"


class InitializationError(AwaitError):
    """Snapshot verdict: the Service exists but is not ready as observed."""

    headline = "Resource '{name}' was created but failed to initialize"

    def __init__(
        self,
        object_name: str,
        sub_errors: list[str] | None = None,
        warnings: list[EventSummary] | None = None,
        service: ServiceResource | None = None,
    ) -> None:
        self.service = service
        super().__init__(object_name, sub_errors, warnings)
