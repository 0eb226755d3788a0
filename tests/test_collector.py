import threading
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from helpers import endpoints_payload, service_payload
from service_await.observation import collector as collector_mod
from service_await.observation.collector import ServiceCollector
from service_await.observation.models import EventType


def _list(items, resource_version="42"):
    return MagicMock(items=items, metadata=MagicMock(resource_version=resource_version))


def _event(reason, minute):
    return client.CoreV1Event(
        metadata=client.V1ObjectMeta(name=f"web.{reason}"),
        involved_object=client.V1ObjectReference(kind="Service", name="web"),
        type="Warning",
        reason=reason,
        message=f"{reason} happened",
        count=2,
        last_timestamp=datetime(2024, 5, 1, 12, minute, tzinfo=timezone.utc),
    )


@pytest.fixture
def core():
    return MagicMock(spec=client.CoreV1Api)


@pytest.fixture
def collector(core):
    return ServiceCollector(namespace="prod", core_api=core)


def test_get_service_parses_live_object(core, collector):
    core.read_namespaced_service.return_value = client.V1Service(
        metadata=client.V1ObjectMeta(name="web", namespace="prod"),
        spec=client.V1ServiceSpec(type="NodePort"),
    )
    svc = collector.get_service("web")
    core.read_namespaced_service.assert_called_once_with(name="web", namespace="prod")
    assert svc.name == "web"
    assert svc.service_type == "NodePort"


def test_get_service_propagates_not_found(core, collector):
    core.read_namespaced_service.side_effect = ApiException(status=404, reason="Not Found")
    with pytest.raises(ApiException):
        collector.get_service("web")


def test_list_endpoints_parses_items(core, collector):
    core.list_namespaced_endpoints.return_value = _list(
        [
            client.V1Endpoints(
                metadata=client.V1ObjectMeta(name="web"),
                subsets=[client.V1EndpointSubset(addresses=[client.V1EndpointAddress(ip="10.0.0.7")])],
            )
        ]
    )
    endpoints = collector.list_endpoints()
    assert [ep.name for ep in endpoints] == ["web"]
    assert endpoints[0].has_targets


def test_recent_warnings_returns_newest_last_limited(core, collector):
    core.list_namespaced_event.return_value = _list([_event("B", 5), _event("A", 1), _event("C", 9)])
    warnings = collector.recent_warnings("prod", "web", "Service", 2)
    core.list_namespaced_event.assert_called_once_with(
        namespace="prod",
        field_selector="involvedObject.name=web,involvedObject.kind=Service,type=Warning",
    )
    assert [w.reason for w in warnings] == ["B", "C"]
    assert warnings[0].involved_object == "Service/web"
    assert warnings[0].format() == "[Warning] B: B happened"


def test_recent_warnings_degrades_on_api_error(core, collector):
    core.list_namespaced_event.side_effect = ApiException(status=403, reason="Forbidden")
    assert collector.recent_warnings("prod", "web", "Service", 3) == []


def test_recent_warnings_zero_limit_skips_api(core, collector):
    assert collector.recent_warnings("prod", "web", "Service", 0) == []
    core.list_namespaced_event.assert_not_called()


def test_watch_stream_lists_eagerly(core, collector):
    core.list_namespaced_service.side_effect = ApiException(status=403, reason="Forbidden")
    with pytest.raises(ApiException):
        collector.watch_services()


def _versioned(payload, resource_version):
    payload["metadata"]["resourceVersion"] = resource_version
    return payload


def test_watch_stream_replays_list_then_rewatches_from_last_version(core, collector, monkeypatch):
    core.list_namespaced_endpoints.return_value = _list([endpoints_payload(name="web")], resource_version="7")
    batches = [
        [
            {"type": "BOOKMARK", "raw_object": {}},
            {"type": "MODIFIED", "raw_object": _versioned(endpoints_payload(subsets=[{"addresses": []}]), "8")},
        ],
        [{"type": "DELETED", "raw_object": _versioned(endpoints_payload(), "9")}],
    ]
    calls = []
    opened = {}

    def fake_stream(func, **kwargs):
        calls.append(kwargs)
        if len(calls) > len(batches):
            opened["stream"].stop()
            return iter([])
        return iter(batches[len(calls) - 1])

    fake_watch = MagicMock()
    fake_watch.stream.side_effect = fake_stream
    monkeypatch.setattr(collector_mod.watch, "Watch", lambda: fake_watch)

    stream = opened["stream"] = collector.watch_endpoints()
    events = list(stream)

    assert [e.type for e in events] == [EventType.ADDED, EventType.MODIFIED, EventType.DELETED]
    assert [c["resource_version"] for c in calls] == ["7", "8", "9"]
    assert all(c["timeout_seconds"] == collector_mod.WATCH_TIMEOUT_SECONDS for c in calls)
    assert fake_watch.stream.call_args.args == (core.list_namespaced_endpoints,)
    fake_watch.stop.assert_called_once()


def test_watch_stream_releases_idle_watch_after_stop(core, collector, monkeypatch):
    core.list_namespaced_service.return_value = _list([])

    def idle_stream(func, **kwargs):
        # The server closes an idle watch once timeout_seconds elapse.
        time.sleep(0.01)
        return iter([])

    fake_watch = MagicMock()
    fake_watch.stream.side_effect = idle_stream
    monkeypatch.setattr(collector_mod.watch, "Watch", lambda: fake_watch)

    stream = collector.watch_services()
    consumer = threading.Thread(target=lambda: list(stream), daemon=True)
    consumer.start()
    time.sleep(0.05)
    stream.stop()
    consumer.join(2)
    assert not consumer.is_alive()


def test_watch_stream_stop_ends_replay(core, collector, monkeypatch):
    core.list_namespaced_service.return_value = _list([service_payload(name="a"), service_payload(name="b")])
    monkeypatch.setattr(collector_mod.watch, "Watch", MagicMock)
    stream = collector.watch_services()
    it = iter(stream)
    first = next(it)
    stream.stop()
    assert first.object["metadata"]["name"] == "a"
    assert list(it) == []
