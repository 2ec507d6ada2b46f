"""Run dumper operations in the background and stream their progress.

A :class:`Job` carries two independent outputs: a queue of
:class:`ProgressEvent` values and the final :class:`OperationResult`.
The worker has a single thread, so operations never overlap on the
dumper's coordinator. A job's event stream ends only after the
reader thread has delivered its last progress value.
"""

from __future__ import annotations

import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterator

from .dumper import MegaDumper
from .models.result import OperationResult, ProgressEvent

logger = logging.getLogger(__name__)

OPERATIONS = ("get_header", "dump", "autodetect")
PROGRESS_DRAIN_TIMEOUT = 5.0

_DONE = object()


class Job:
    """Handle on a submitted operation."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._events: queue.Queue = queue.Queue()
        self._future: Future | None = None

    def publish(self, event: ProgressEvent) -> None:
        self._events.put(event)

    def _finish(self) -> None:
        self._events.put(_DONE)

    def events(self, timeout: float | None = None) -> Iterator[ProgressEvent]:
        """Yield progress events until the operation finishes.

        Raises:
            queue.Empty: If no event arrives within ``timeout`` seconds.
        """
        while True:
            item = self._events.get(timeout=timeout)
            if item is _DONE:
                return
            yield item

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def result(self, timeout: float | None = None) -> OperationResult:
        """Block until the operation finishes and return its result."""
        return self._future.result(timeout=timeout)


class DumperWorker:
    """Single-threaded executor for :class:`MegaDumper` operations."""

    def __init__(self, dumper: MegaDumper) -> None:
        self.dumper = dumper
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="megadumper"
        )

    def submit(self, operation: str, *args) -> Job:
        """Queue ``operation`` (a :class:`MegaDumper` method name)."""
        if operation not in OPERATIONS:
            raise ValueError(
                f"Unknown operation '{operation}'. Valid: {list(OPERATIONS)}"
            )
        job = Job(operation)
        job._future = self._executor.submit(self._run, job, operation, args)
        return job

    def _run(self, job: Job, operation: str, args: tuple) -> OperationResult:
        previous = self.dumper.on_progress
        self.dumper.on_progress = job.publish
        try:
            logger.debug("Running %s%r", operation, args)
            return getattr(self.dumper, operation)(*args)
        finally:
            # Progress for the last chunk may still be in flight
            if not self.dumper.wait_idle(PROGRESS_DRAIN_TIMEOUT):
                logger.warning("Progress for %s still pending at finish", operation)
            self.dumper.on_progress = previous
            job._finish()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
