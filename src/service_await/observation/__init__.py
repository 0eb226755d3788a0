"""Observation layer: read Services, Endpoints and events from Kubernetes."""

from service_await.observation.collector import ServiceCollector, WatchStream
from service_await.observation.models import (
    EndpointsResource,
    EventSummary,
    EventType,
    ServiceResource,
    WatchEvent,
)

__all__ = [
    "EndpointsResource",
    "EventSummary",
    "EventType",
    "ServiceCollector",
    "ServiceResource",
    "WatchEvent",
    "WatchStream",
]
