from __future__ import annotations

from typing import Any

from service_await.observation.models import (
    EndpointsResource,
    EventSummary,
    EventType,
    ServiceResource,
    WatchEvent,
)
from service_await.readiness.signals import Settled
from service_await.readiness.state import AwaitConfig, Severity


def service_payload(name: str = "web", svc_type: str | None = "ClusterIP", ingress: list | None = None) -> dict:
    payload: dict[str, Any] = {"metadata": {"name": name, "namespace": "default"}, "spec": {}}
    if svc_type is not None:
        payload["spec"]["type"] = svc_type
    if ingress is not None:
        payload["status"] = {"loadBalancer": {"ingress": ingress}}
    return payload


def endpoints_payload(name: str = "web", subsets: list | None = None) -> dict:
    return {"metadata": {"name": name, "namespace": "default"}, "subsets": subsets}


ONE_SUBSET = [{"addresses": [{"ip": "10.0.0.7"}], "ports": [{"port": 80}]}]


def event(payload: dict, event_type: EventType = EventType.ADDED) -> WatchEvent:
    return WatchEvent(type=event_type, object=payload)


class FakeSettleTimer:
    """Counts schedules; generations behave like the real timer."""

    def __init__(self) -> None:
        self.generation = 0
        self.cancelled = False

    def schedule(self) -> None:
        self.generation += 1

    def is_current(self, wake: Settled) -> bool:
        return wake.generation == self.generation

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> Settled:
        return Settled(self.generation)


class FakeStream:
    def __init__(self, events: list[WatchEvent] | None = None) -> None:
        self.events = list(events or [])
        self.stopped = False

    def __iter__(self):
        return iter(self.events)

    def stop(self) -> None:
        self.stopped = True


class FakeClient:
    def __init__(
        self,
        service: dict | None = None,
        endpoints: list[dict] | None = None,
        service_events: list[WatchEvent] | None = None,
        endpoints_events: list[WatchEvent] | None = None,
    ) -> None:
        self.service = service
        self.endpoints = endpoints or []
        self.service_stream = FakeStream(service_events)
        self.endpoints_stream = FakeStream(endpoints_events)
        self.get_error: Exception | None = None
        self.list_error: Exception | None = None
        self.watch_error: Exception | None = None

    def watch_services(self) -> FakeStream:
        if self.watch_error:
            raise self.watch_error
        return self.service_stream

    def watch_endpoints(self) -> FakeStream:
        return self.endpoints_stream

    def get_service(self, name: str) -> ServiceResource:
        if self.get_error:
            raise self.get_error
        return ServiceResource.model_validate(self.service)

    def list_endpoints(self) -> list[EndpointsResource]:
        if self.list_error:
            raise self.list_error
        return [EndpointsResource.model_validate(ep) for ep in self.endpoints]

    def recent_warnings(self, namespace: str, name: str, kind: str, limit: int) -> list[EventSummary]:
        return []


class RecordingSink:
    def __init__(self) -> None:
        self.messages: list[tuple[Severity, str, str]] = []

    def log(self, severity: Severity, urn: str, message: str) -> None:
        self.messages.append((severity, urn, message))


def make_config(
    svc_type: str | None = "ClusterIP",
    client: Any = None,
    diagnostics: Any = None,
    warnings: Any = None,
    **kwargs: Any,
) -> AwaitConfig:
    return AwaitConfig(
        inputs=ServiceResource.model_validate(service_payload(svc_type=svc_type)),
        client=client or FakeClient(),
        diagnostics=diagnostics,
        warnings=warnings,
        **kwargs,
    )


def warning_summary(reason: str = "SyncLoadBalancerFailed", message: str = "quota exceeded") -> EventSummary:
    return EventSummary(type="Warning", reason=reason, message=message, involved_object="Service/web")
