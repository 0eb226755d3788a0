"""Turn single Service / Endpoints watch events into readiness flags.

Both classifiers start from a blank slate on every accepted event: the flag
they own reflects the latest event only, never an accumulation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import ValidationError

from service_await.observation.models import (
    EndpointsResource,
    EventType,
    ServiceResource,
    WatchEvent,
)
from service_await.readiness.state import ReadinessState, Severity

logger = logging.getLogger(__name__)


def process_service_event(state: ReadinessState, event: WatchEvent) -> None:
    config = state.config
    try:
        service = ServiceResource.model_validate(event.object)
    except ValidationError as e:
        logger.debug("Service watch received an unreadable object: %s", e)
        return

    # Some other Service in the namespace.
    if service.name != config.name:
        return

    was_ready = state.service_ready
    state.service_ready = False
    if event.type == EventType.DELETED:
        return

    if not config.inputs.requires_external_address:
        state.service_ready = True
        return

    logger.debug("Received status for Service '%s': %s", config.name, service.status)
    state.service_ready = len(service.ingress) > 0
    if state.service_ready and not was_ready:
        config.log(Severity.INFO, "Service has been allocated an IP")
    elif not state.service_ready:
        logger.debug("Waiting for Service '%s' to assign IP/hostname for a load balancer", config.name)


def process_endpoints_event(
    state: ReadinessState,
    event: WatchEvent,
    schedule_settle: Callable[[], None],
) -> None:
    config = state.config
    try:
        endpoints = EndpointsResource.model_validate(event.object)
    except ValidationError as e:
        logger.debug("Endpoints watch received an unreadable object: %s", e)
        return

    # Endpoints share their Service's name; names are unique per namespace.
    if endpoints.name != config.name:
        return

    state.endpoints_ready = False
    if event.type in (EventType.ADDED, EventType.MODIFIED):
        state.endpoints_ready = endpoints.has_targets

    state.endpoints_settled = False
    schedule_settle()


def process_settled(state: ReadinessState) -> None:
    config = state.config
    if state.endpoints_ready:
        config.log(Severity.INFO, f"Service '{config.name}' successfully created endpoint objects")
    else:
        config.log(Severity.WARNING, f"Service '{config.name}' does not target any Pods")
    state.endpoints_settled = True
