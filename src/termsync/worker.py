"""Shared background pool that runs terminology import attempts."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Set, TypeVar

from .models import AttemptOutcome

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

OutcomeListener = Callable[[AttemptOutcome], None]


class ImportWorkerPool:
    """Thread pool for import attempts.

    Attempts for different terminologies run concurrently. A failing attempt is
    logged once and its exception stays on the returned future; the pool keeps
    serving later submissions.
    """

    def __init__(self, max_workers: int = 4) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="termsync-import")
        self._lock = threading.Lock()
        self._pending: Set[Future] = set()
        self._listeners: List[OutcomeListener] = []

    def add_listener(self, listener: OutcomeListener) -> None:
        """Register ``listener`` to receive an :class:`AttemptOutcome` after every attempt."""

        with self._lock:
            self._listeners.append(listener)

    def submit(self, terminology: str, version: str, fn: Callable[[], T]) -> "Future[T]":
        def run_attempt() -> T:
            started = time.monotonic()
            try:
                result = fn()
            except Exception as exc:
                _LOGGER.error("Import attempt for %s (version %s) failed", terminology, version, exc_info=True)
                self._publish(
                    AttemptOutcome(terminology, version, False, exc, time.monotonic() - started)
                )
                raise
            _LOGGER.info("Import attempt for %s (version %s) finished", terminology, version)
            self._publish(AttemptOutcome(terminology, version, True, None, time.monotonic() - started))
            return result

        future = self._executor.submit(run_attempt)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)
        _LOGGER.debug("Scheduled import attempt for %s (version %s)", terminology, version)
        return future

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted attempt has finished. Returns ``False`` on timeout."""

        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _publish(self, outcome: AttemptOutcome) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(outcome)
            except Exception:
                _LOGGER.exception("Import outcome listener failed for %s", outcome.terminology)

    def __enter__(self) -> "ImportWorkerPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)


__all__ = ["ImportWorkerPool", "OutcomeListener"]
