"""Await logic for core/v1 Service.

A Service is ready when all of the following hold:

1. The Service object exists, and if its declared type is ``LoadBalancer`` it
   has been allocated at least one ingress IP or hostname.
2. The Endpoints object of the same name targets at least one backend.
3. No Endpoints change has been seen for ``SETTLE_DELAY_SECONDS``.

The control plane never says "endpoints are done populating", so the third
condition is a quiet-period heuristic. Live mode multiplexes both watch
streams, the settle timer, cancellation and the timeout onto one queue and
processes one wake per turn. Snapshot mode replays one fetched Service and the
current Endpoints list through the same classifiers.

On cancellation or timeout the settle condition is dropped: a Service whose
flags are otherwise ready is reported as ready even if its Endpoints changed
within the last few seconds. The regular loop check still requires all three.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from service_await.observation.models import EndpointsResource, EventSummary, ServiceResource, WatchEvent
from service_await.readiness.classifiers import (
    process_endpoints_event,
    process_service_event,
    process_settled,
)
from service_await.readiness.errors import (
    AwaitCancelledError,
    AwaitSetupError,
    AwaitTimeoutError,
    InitializationError,
)
from service_await.readiness.signals import (
    AWAIT_TIMEOUT_SECONDS,
    SETTLE_DELAY_SECONDS,
    Cancelled,
    EndpointsChanged,
    ServiceChanged,
    Settled,
    SettleTimer,
    TimedOut,
    Wake,
    WakeQueue,
)
from service_await.readiness.state import AwaitConfig, ReadinessState, WatchSource

logger = logging.getLogger(__name__)


def _no_settle() -> None:
    pass


class ServiceInitAwaiter:
    """Decides when one Service and its Endpoints are ready. Single use."""

    def __init__(
        self,
        config: AwaitConfig,
        timeout: float = AWAIT_TIMEOUT_SECONDS,
        settle_delay: float = SETTLE_DELAY_SECONDS,
    ) -> None:
        self.config = config
        self.state = ReadinessState(config=config)
        self._timeout = timeout
        self._settle_delay = settle_delay

    def await_ready(self) -> None:
        """Block until ready; raise an ``AwaitError`` subclass otherwise."""
        name = self.config.name
        try:
            service_watch = self.config.client.watch_services()
        except Exception as e:
            raise AwaitSetupError(name, "watch for Service object") from e
        try:
            try:
                endpoints_watch = self.config.client.watch_endpoints()
            except Exception as e:
                raise AwaitSetupError(name, "watch for Endpoints objects associated with Service") from e
            try:
                self._run(service_watch, endpoints_watch)
            finally:
                endpoints_watch.stop()
        finally:
            service_watch.stop()

    def _run(self, service_watch: WatchSource, endpoints_watch: WatchSource) -> None:
        wakes = WakeQueue(timeout=self._timeout)
        settle = SettleTimer(wakes.put, delay=self._settle_delay)

        def on_cancel() -> None:
            wakes.put(Cancelled())

        self.config.cancellation.subscribe(on_cancel)
        try:
            wakes.pump(service_watch, ServiceChanged, name=f"watch-service-{self.config.name}")
            wakes.pump(endpoints_watch, EndpointsChanged, name=f"watch-endpoints-{self.config.name}")
            self._await(wakes.next, settle)
        finally:
            self.config.cancellation.unsubscribe(on_cancel)
            settle.cancel()
            wakes.close()

    def _await(self, next_wake: Callable[[], Wake], settle: SettleTimer) -> None:
        """Event loop over wakes; separate from ``_run`` so tests can feed it directly."""
        state = self.state
        name = self.config.name
        while True:
            if state.succeeded():
                return

            wake = next_wake()
            if isinstance(wake, Cancelled):
                if state.ready_ignoring_settle():
                    return
                raise AwaitCancelledError(name, state.error_messages(), self._recent_warnings())
            if isinstance(wake, TimedOut):
                if state.ready_ignoring_settle():
                    return
                raise AwaitTimeoutError(name, state.error_messages(), self._recent_warnings())
            if isinstance(wake, Settled):
                if settle.is_current(wake):
                    process_settled(state)
                else:
                    logger.debug("Ignoring stale settle signal for Service '%s'", name)
            elif isinstance(wake, ServiceChanged):
                process_service_event(state, wake.event)
            elif isinstance(wake, EndpointsChanged):
                process_endpoints_event(state, wake.event, settle.schedule)

    def read(self) -> None:
        """Judge readiness from the current cluster state, without waiting.

        A failure to fetch the Service is raised unwrapped, so a 404 can be
        told apart from other errors. A failure to list Endpoints is treated
        as an empty list.
        """
        client = self.config.client
        service = client.get_service(self.config.name)
        try:
            endpoints = client.list_endpoints()
        except Exception:
            logger.debug(
                "Error retrieving Endpoints list for Service '%s'", self.config.name, exc_info=True
            )
            endpoints = []
        self._read(service, endpoints)

    def _read(self, service: ServiceResource, endpoints: list[EndpointsResource]) -> None:
        state = self.state
        process_service_event(state, WatchEvent.added(service))
        for ep in endpoints:
            process_endpoints_event(state, WatchEvent.added(ep), _no_settle)
        state.endpoints_settled = True

        if state.succeeded():
            return
        raise InitializationError(
            self.config.name,
            state.error_messages(),
            self._recent_warnings(),
            service=service,
        )

    def _recent_warnings(self) -> list[EventSummary]:
        lookup = self.config.warnings
        if lookup is None or self.config.warning_limit <= 0:
            return []
        try:
            return list(lookup(self.config.namespace, self.config.name, "Service", self.config.warning_limit))
        except Exception:
            logger.debug("Could not retrieve warning events for Service '%s'", self.config.name, exc_info=True)
            return []


def await_service_init(config: AwaitConfig) -> None:
    ServiceInitAwaiter(config).await_ready()


def read_service_init(config: AwaitConfig) -> None:
    ServiceInitAwaiter(config).read()
