"""
Scheduling Module
=================

Timers and request slots for the search controller.

Design:
- Scheduler protocol: call_later(delay, fn) -> cancellable handle
- DelayedCall: one pending callback per purpose, superseded on reschedule
- RequestSlot: at most one external request in flight per kind;
  a superseded request is cancelled and its late answer ignored
- Failures of external collaborators become "no result", never exceptions
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    """Handle returned by Scheduler.call_later()."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Protocol for delayed execution (interface)."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        ...


class ThreadingScheduler:
    """Scheduler backed by daemon threading.Timer instances."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class DelayedCall:
    """
    Single pending callback, replaced when rescheduled.

    Usage:
        dismiss = DelayedCall("search_dismiss", scheduler)
        dismiss.schedule(1.0, controller.cancel_search)
        dismiss.cancel()  # e.g. user started a new gesture
    """

    def __init__(self, name: str, scheduler: Scheduler):
        self.name = name
        self._scheduler = scheduler
        self._handle: Optional[Cancellable] = None
        self._generation = 0
        self._lock = threading.Lock()

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
            generation = self._generation

            def _fire():
                with self._lock:
                    # Superseded or cancelled after the timer already fired
                    if generation != self._generation:
                        return
                    self._handle = None
                callback()

            self._handle = self._scheduler.call_later(delay, _fire)

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None
            self._generation += 1

    @property
    def pending(self) -> bool:
        return self._handle is not None


class RequestSlot:
    """
    At-most-one-in-flight request of one kind (geocode, directions, ...).

    Submitting a new request cancels the outstanding one. Cancellation is
    silent: the superseded request's result (or error) is never delivered.

    Usage:
        slot = RequestSlot("directions", executor)
        slot.submit(
            provider.route, origin, destination,
            on_result=lambda points: ...,
        )
    """

    def __init__(self, kind: str, executor: Optional[Executor] = None):
        self.kind = kind
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"{kind}-request"
        )
        self._future: Optional[Future] = None
        self._generation = 0
        self._lock = threading.Lock()

    def submit(
        self,
        fn: Callable[..., Any],
        *args: Any,
        on_result: Callable[[Any], None],
        on_no_result: Optional[Callable[[], None]] = None,
    ) -> Future:
        """
        Issue a request, superseding any outstanding one.

        Args:
            fn: Provider call
            *args: Provider call arguments
            on_result: Receives a non-empty answer
            on_no_result: Called when the provider failed or answered nothing

        Returns:
            The request future
        """
        with self._lock:
            previous = self._future
            self._generation += 1
            generation = self._generation
            future = self._executor.submit(fn, *args)
            self._future = future

        # Future.cancel() runs done-callbacks inline; never call it under the lock
        if previous is not None:
            previous.cancel()

        def _done(done: Future) -> None:
            with self._lock:
                if generation != self._generation:
                    return
                self._future = None
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                logger.warning(f"{self.kind} request failed: {error}")
                if on_no_result is not None:
                    on_no_result()
                return
            answer = done.result()
            if not answer:
                logger.info(f"{self.kind} request returned no result")
                if on_no_result is not None:
                    on_no_result()
                return
            on_result(answer)

        future.add_done_callback(_done)
        return future

    def cancel(self) -> None:
        with self._lock:
            previous, self._future = self._future, None
            self._generation += 1
        if previous is not None:
            previous.cancel()

    @property
    def in_flight(self) -> bool:
        return self._future is not None

    def shutdown(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=False)
