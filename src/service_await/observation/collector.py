"""Read Services, Endpoints and Warning events from a Kubernetes cluster."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from typing import Any

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException

from service_await.observation.models import (
    EndpointsResource,
    EventSummary,
    ServiceResource,
    WatchEvent,
    resource_to_dict,
)

logger = logging.getLogger(__name__)

# Server-side lifetime of one watch request; bounds how long a stopped stream
# keeps its connection open while the namespace is idle.
WATCH_TIMEOUT_SECONDS = 5


def _load_kube_config(kubeconfig_path: str | None, context: str | None) -> client.Configuration:
    """Load in-cluster or kubeconfig-based configuration."""
    try:
        config.load_incluster_config()
        return client.Configuration.get_default_copy()
    except config.ConfigException:
        pass
    kwargs: dict[str, Any] = {}
    if kubeconfig_path:
        kwargs["config_file"] = str(kubeconfig_path)
    if context:
        kwargs["context"] = context
    config.load_kube_config(**kwargs)
    return client.Configuration.get_default_copy()


def _build_event_summary(ev: Any) -> EventSummary:
    """Build EventSummary from CoreV1Event."""
    obj = ev.involved_object
    involved = f"{getattr(obj, 'kind', '')}/{getattr(obj, 'name', '')}"
    return EventSummary(
        type=ev.type or "Normal",
        reason=ev.reason or "",
        message=ev.message or "",
        involved_object=involved,
        count=ev.count or 1,
        first_timestamp=ev.first_timestamp.replace(tzinfo=timezone.utc) if ev.first_timestamp else None,
        last_timestamp=ev.last_timestamp.replace(tzinfo=timezone.utc) if ev.last_timestamp else None,
        source_component=getattr(ev.source, "component", None) if ev.source else None,
    )


class WatchStream:
    """A subscription to every object of one kind in a namespace.

    The initial list runs in the constructor, so an unreachable API server or a
    missing permission fails here rather than inside the consuming thread.
    Listed objects are replayed as ADDED events before the live watch picks up
    from the list's resourceVersion. Each watch request is short-lived and is
    reissued from the last seen resourceVersion until ``stop()`` is called, so a
    stopped stream releases its connection within ``WATCH_TIMEOUT_SECONDS``.
    """

    def __init__(self, list_func: Callable[..., Any], namespace: str, kind: str) -> None:
        self.kind = kind
        self._list_func = list_func
        self._namespace = namespace
        initial = list_func(namespace=namespace)
        self._initial = list(initial.items or [])
        self._resource_version = initial.metadata.resource_version if initial.metadata else None
        self._watch = watch.Watch()
        self._stopped = False

    def __iter__(self) -> Iterator[WatchEvent]:
        for item in self._initial:
            if self._stopped:
                return
            yield WatchEvent.added(item)
        while not self._stopped:
            kwargs: dict[str, Any] = {
                "namespace": self._namespace,
                "timeout_seconds": WATCH_TIMEOUT_SECONDS,
                "_request_timeout": WATCH_TIMEOUT_SECONDS * 2,
            }
            if self._resource_version:
                kwargs["resource_version"] = self._resource_version
            for raw in self._watch.stream(self._list_func, **kwargs):
                event = WatchEvent.from_raw(raw)
                if event is None:
                    logger.debug("Skipping %s watch event of type %s", self.kind, raw.get("type"))
                    continue
                resource_version = event.object.get("metadata", {}).get("resourceVersion")
                if resource_version:
                    self._resource_version = resource_version
                yield event

    def stop(self) -> None:
        self._stopped = True
        self._watch.stop()


class ServiceCollector:
    """Watches and reads Services and Endpoints in one namespace."""

    def __init__(
        self,
        namespace: str = "default",
        kubeconfig: str | None = None,
        context: str | None = None,
        core_api: client.CoreV1Api | None = None,
    ) -> None:
        self.namespace = namespace
        if core_api is None:
            cfg = _load_kube_config(kubeconfig, context)
            core_api = client.CoreV1Api(client.ApiClient(cfg))
        self._core = core_api

    def watch_services(self) -> WatchStream:
        return WatchStream(self._core.list_namespaced_service, self.namespace, "Service")

    def watch_endpoints(self) -> WatchStream:
        return WatchStream(self._core.list_namespaced_endpoints, self.namespace, "Endpoints")

    def get_service(self, name: str) -> ServiceResource:
        """Fetch the live Service. ApiException (404 included) is not caught here."""
        svc = self._core.read_namespaced_service(name=name, namespace=self.namespace)
        return ServiceResource.model_validate(resource_to_dict(svc))

    def list_endpoints(self) -> list[EndpointsResource]:
        ep_list = self._core.list_namespaced_endpoints(namespace=self.namespace)
        return [EndpointsResource.model_validate(resource_to_dict(ep)) for ep in ep_list.items or []]

    def recent_warnings(self, namespace: str, name: str, kind: str, limit: int) -> list[EventSummary]:
        """Return the last ``limit`` Warning events for an object, oldest first."""
        if limit <= 0:
            return []
        selector = f"involvedObject.name={name},involvedObject.kind={kind},type=Warning"
        try:
            event_list = self._core.list_namespaced_event(namespace=namespace, field_selector=selector)
        except ApiException as e:
            logger.debug("Could not retrieve warning events for %s '%s': %s", kind, name, e.reason)
            return []
        items = sorted(
            event_list.items or [],
            key=lambda x: (x.last_timestamp or x.first_timestamp or datetime.min.replace(tzinfo=timezone.utc)),
        )
        return [_build_event_summary(ev) for ev in items[-limit:]]
