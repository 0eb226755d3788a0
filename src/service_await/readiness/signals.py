"""Wake reasons and the sources that produce them for the await loop.

The loop blocks on a single queue. Watch streams, the settle timer and the
cancellation signal each push a wake reason onto it from their own threads;
the deadline is enforced by the blocking read itself.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Union

from service_await.observation.models import WatchEvent

logger = logging.getLogger(__name__)

AWAIT_TIMEOUT_SECONDS = 10 * 60
SETTLE_DELAY_SECONDS = 10


@dataclass(frozen=True)
class ServiceChanged:
    event: WatchEvent


@dataclass(frozen=True)
class EndpointsChanged:
    event: WatchEvent


@dataclass(frozen=True)
class Settled:
    generation: int


@dataclass(frozen=True)
class Cancelled:
    pass


@dataclass(frozen=True)
class TimedOut:
    pass


Wake = Union[ServiceChanged, EndpointsChanged, Settled, Cancelled, TimedOut]


class CancellationSignal:
    """Caller-controlled cancellation, observable by any number of awaiters."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def subscribe(self, callback: Callable[[], None]) -> None:
        """Register ``callback``; it runs at once if cancellation already happened."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def unsubscribe(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


class SettleTimer:
    """One reschedulable quiet-period timer per awaiter.

    Every ``schedule()`` replaces the pending timer and bumps the generation.
    A ``Settled`` wake from an older generation may still be in the queue; the
    loop compares it against ``generation`` and drops it.
    """

    def __init__(self, fire: Callable[[Settled], None], delay: float = SETTLE_DELAY_SECONDS) -> None:
        self._fire = fire
        self._delay = delay
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self.generation = 0

    def schedule(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self.generation += 1
            self._timer = threading.Timer(self._delay, self._fire, args=(Settled(self.generation),))
            self._timer.daemon = True
            self._timer.start()

    def is_current(self, wake: Settled) -> bool:
        return wake.generation == self.generation

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class WakeQueue:
    """Multiplexes every wake source onto one blocking read with a deadline."""

    def __init__(self, timeout: float = AWAIT_TIMEOUT_SECONDS) -> None:
        self._queue: queue.Queue[Wake] = queue.Queue()
        self._deadline = time.monotonic() + timeout
        self._closed = threading.Event()

    def put(self, wake: Wake) -> None:
        if not self._closed.is_set():
            self._queue.put(wake)

    def pump(self, stream: Iterable[WatchEvent], wrap: Callable[[WatchEvent], Wake], name: str) -> threading.Thread:
        """Drain ``stream`` on a daemon thread, wrapping each event as a wake."""
        thread = threading.Thread(target=self._drain, args=(stream, wrap, name), name=name, daemon=True)
        thread.start()
        return thread

    def _drain(self, stream: Iterable[WatchEvent], wrap: Callable[[WatchEvent], Any], name: str) -> None:
        try:
            for event in stream:
                if self._closed.is_set():
                    return
                self.put(wrap(event))
        except Exception:
            if not self._closed.is_set():
                logger.warning("Watch stream %s ended with an error", name, exc_info=True)
            return
        logger.debug("Watch stream %s ended", name)

    def next(self) -> Wake:
        """Block for the next wake; ``TimedOut`` once the deadline has passed."""
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            return TimedOut()
        try:
            return self._queue.get(timeout=remaining)
        except queue.Empty:
            return TimedOut()

    def close(self) -> None:
        self._closed.set()
