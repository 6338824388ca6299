"""Run blocking work off the event loop, one ``Future`` per dispatch.

Each dispatch puts exactly one terminal message on the loop's queue. At most
one mutating dispatch is in flight at a time; it stays in flight until the
engine acknowledges its terminal message, so a second mutation can never
start against a repository whose last change has not been reconciled yet.
Read-only loads are not limited.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import TypeVar

from ..errors import EventualConsistencyFailure
from ..messages import CommandFailed, CommandSucceeded, LoadFailed, LoadKind, Message, Operation, RefreshMode

logger = logging.getLogger(__name__)

T = TypeVar("T")

BUSY_MESSAGE = "Another operation is still running"
DEFAULT_RETRY_ATTEMPTS = 5
DEFAULT_RETRY_DELAY_SECONDS = 3.0


def retry_eventual_consistency(
    call: Callable[[], T],
    *,
    attempts: int = DEFAULT_RETRY_ATTEMPTS,
    delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``call`` until it stops raising ``EventualConsistencyFailure``.

    Any other exception propagates immediately; the last eventual-consistency
    failure propagates once ``attempts`` calls have been made.
    """
    for attempt in range(1, attempts + 1):
        try:
            return call()
        except EventualConsistencyFailure as exc:
            if attempt >= attempts:
                logger.warning("giving up after %d attempts: %s", attempt, exc)
                raise
            logger.info("attempt %d/%d not yet consistent (%s); retrying in %gs", attempt, attempts, exc, delay)
            sleep(delay)
    raise ValueError("attempts must be at least 1")


class AsyncCommandDispatcher:
    """Submit mutations and loads to a worker pool feeding ``results``."""

    def __init__(
        self,
        results: queue.Queue[Message],
        *,
        executor: Executor | None = None,
        max_workers: int = 4,
    ) -> None:
        self._results = results
        self._executor = executor if executor is not None else ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="jjview-worker",
        )
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._in_flight: int | None = None

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._in_flight is not None

    def dispatch(self, operation: Operation, work: Callable[[], object]) -> int | None:
        """Start a mutation; returns its id, or ``None`` when another is in flight.

        ``work`` returns an object with ``status``, ``snapshot``, ``url`` and
        ``detail`` attributes.
        """
        with self._lock:
            if self._in_flight is not None:
                logger.info("refusing %s: dispatch %d still in flight", operation.value, self._in_flight)
                return None
            dispatch_id = next(self._ids)
            self._in_flight = dispatch_id
        logger.debug("dispatch %d: %s started", dispatch_id, operation.value)
        future = self._executor.submit(work)
        future.add_done_callback(lambda done: self._finish_command(dispatch_id, operation, done))
        return dispatch_id

    def _finish_command(self, dispatch_id: int, operation: Operation, future: Future) -> None:
        try:
            outcome = future.result()
        except Exception as exc:
            logger.warning("dispatch %d: %s failed: %s", dispatch_id, operation.value, exc)
            message: Message = CommandFailed(dispatch_id=dispatch_id, operation=operation, error=exc)
        else:
            logger.debug("dispatch %d: %s finished", dispatch_id, operation.value)
            message = CommandSucceeded(
                dispatch_id=dispatch_id,
                operation=operation,
                status=outcome.status,
                snapshot=outcome.snapshot,
                url=outcome.url,
                detail=outcome.detail,
            )
        self._results.put(message)

    def acknowledge(self, dispatch_id: int) -> None:
        """Release the in-flight slot once the engine handled ``dispatch_id``."""
        with self._lock:
            if self._in_flight == dispatch_id:
                self._in_flight = None

    def load(
        self,
        kind: LoadKind,
        work: Callable[[], Message],
        *,
        mode: RefreshMode = RefreshMode.LOUD,
    ) -> Future:
        """Run a read-only load whose ``work`` returns the success message."""
        future = self._executor.submit(work)
        future.add_done_callback(lambda done: self._finish_load(kind, mode, done))
        return future

    def _finish_load(self, kind: LoadKind, mode: RefreshMode, future: Future) -> None:
        try:
            message = future.result()
        except Exception as exc:
            logger.info("%s load failed: %s", kind.value, exc)
            message = LoadFailed(kind=kind, error=exc, mode=mode)
        self._results.put(message)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


__all__ = [
    "AsyncCommandDispatcher",
    "BUSY_MESSAGE",
    "DEFAULT_RETRY_ATTEMPTS",
    "DEFAULT_RETRY_DELAY_SECONDS",
    "retry_eventual_consistency",
]
