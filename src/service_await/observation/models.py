"""Partial schemas for the Kubernetes objects the awaiter reads.

Only the fields that take part in the readiness decision are modelled. Every
field is optional: a missing ``status`` block, a ``null`` ingress list or a
``null`` subset list all read as "not ready yet", never as a parse error.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from kubernetes.client import ApiClient
from pydantic import BaseModel, ConfigDict, Field, field_validator

LOAD_BALANCER = "LoadBalancer"
CLUSTER_IP = "ClusterIP"

_serializer = ApiClient()


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ObjectMeta(_Schema):
    name: str
    namespace: str | None = None


class ServiceSpec(_Schema):
    type: str | None = None


class LoadBalancerIngress(_Schema):
    ip: str | None = None
    hostname: str | None = None


class LoadBalancerStatus(_Schema):
    ingress: list[LoadBalancerIngress] = Field(default_factory=list)

    @field_validator("ingress", mode="before")
    @classmethod
    def _null_ingress(cls, value: Any) -> Any:
        return value or []


class ServiceStatus(_Schema):
    load_balancer: LoadBalancerStatus | None = Field(default=None, alias="loadBalancer")


class ServiceResource(_Schema):
    """A core/v1 Service, reduced to what readiness depends on."""

    metadata: ObjectMeta
    spec: ServiceSpec = Field(default_factory=ServiceSpec)
    status: ServiceStatus | None = None

    @field_validator("spec", mode="before")
    @classmethod
    def _null_spec(cls, value: Any) -> Any:
        return value or {}

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def service_type(self) -> str:
        """Declared type; Kubernetes defaults an absent type to ClusterIP."""
        return self.spec.type or CLUSTER_IP

    @property
    def requires_external_address(self) -> bool:
        return self.service_type == LOAD_BALANCER

    @property
    def ingress(self) -> list[LoadBalancerIngress]:
        if self.status is None or self.status.load_balancer is None:
            return []
        return self.status.load_balancer.ingress


class EndpointSubset(_Schema):
    addresses: list[dict[str, Any]] | None = None
    not_ready_addresses: list[dict[str, Any]] | None = Field(default=None, alias="notReadyAddresses")
    ports: list[dict[str, Any]] | None = None


class EndpointsResource(_Schema):
    """A core/v1 Endpoints object; correlated with its Service by name."""

    metadata: ObjectMeta
    subsets: list[EndpointSubset] = Field(default_factory=list)

    @field_validator("subsets", mode="before")
    @classmethod
    def _null_subsets(cls, value: Any) -> Any:
        return value or []

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def has_targets(self) -> bool:
        return len(self.subsets) > 0


class EventType(str, Enum):
    """Watch event types the awaiter acts on."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


class WatchEvent(BaseModel):
    """One change notification from a watch stream."""

    type: EventType
    object: dict[str, Any]

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> WatchEvent | None:
        """Build from a kubernetes watch dict; None for BOOKMARK, ERROR and unknown types."""
        try:
            event_type = EventType(raw.get("type"))
        except ValueError:
            return None
        payload = raw.get("raw_object")
        if payload is None:
            payload = resource_to_dict(raw.get("object"))
        return cls(type=event_type, object=payload or {})

    @classmethod
    def added(cls, obj: Any) -> WatchEvent:
        """Wrap an already-fetched object as an ADDED event."""
        return cls(type=EventType.ADDED, object=resource_to_dict(obj))


def resource_to_dict(obj: Any) -> dict[str, Any]:
    """Convert a kubernetes model, a schema model or a plain dict to the camelCase dict form."""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True, exclude_none=True)
    return _serializer.sanitize_for_serialization(obj)


class EventSummary(BaseModel):
    """Kubernetes event summary."""

    type: str  # Normal | Warning
    reason: str
    message: str
    involved_object: str  # kind/name
    count: int = 1
    first_timestamp: datetime | None = None
    last_timestamp: datetime | None = None
    source_component: str | None = None

    def format(self) -> str:
        return f"[{self.type}] {self.reason}: {self.message}"
