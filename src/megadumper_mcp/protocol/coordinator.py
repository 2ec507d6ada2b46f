"""Blocking request/response over the transport's asynchronous byte feed.

The caller thread writes a command and waits; the transport's reader
thread pushes incoming chunks into the coordinator. Both sides share one
``threading.Condition``. Completion is a persisted flag rather than a
bare notify, so a frame that finishes before the caller starts waiting
is still observed.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from typing import Callable, Protocol

from ..errors import TransmissionTimeout
from .commands import validate_command
from .framing import FrameAccumulator, FrameState

logger = logging.getLogger(__name__)


class Writable(Protocol):
    def write(self, data: bytes) -> int: ...


class TransmissionCoordinator:
    """Runs one command/response exchange at a time."""

    def __init__(self, on_progress: Callable[[int], None] | None = None) -> None:
        self.on_progress = on_progress
        self._cond = threading.Condition(threading.Lock())
        self._in_flight = threading.Lock()
        self._accumulator = FrameAccumulator()
        self._active = False
        self._completed = False
        self._generation = 0
        self._dispatching = 0
        self._last_activity = 0.0

    @property
    def accumulator(self) -> FrameAccumulator:
        return self._accumulator

    def channel(self) -> Callable[[bytes], None]:
        """Return a data callback for the next transport.

        Chunks it delivers after another channel has been opened are
        dropped, so a late reply to a timed-out exchange cannot complete
        the next one.
        """
        with self._cond:
            self._generation += 1
            generation = self._generation
        return functools.partial(self._receive, generation)

    def on_data(self, data: bytes) -> None:
        """Notification entry point for the current channel."""
        self._receive(None, data)

    def _receive(self, generation: int | None, data: bytes) -> None:
        with self._cond:
            if not self._active:
                logger.debug("Dropping %d bytes outside of an exchange", len(data))
                return
            if generation is not None and generation != self._generation:
                logger.debug("Dropping %d stale bytes", len(data))
                return
            self._last_activity = time.monotonic()
            result = self._accumulator.feed(data)
            if result.completed:
                logger.debug("Frame complete: %d bytes", self._accumulator.expected)
                self._completed = True
                self._cond.notify_all()
            if result.progress is None or self.on_progress is None:
                return
            on_progress = self.on_progress
            self._dispatching += 1

        try:
            on_progress(result.progress)
        finally:
            with self._cond:
                self._dispatching -= 1
                self._cond.notify_all()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no progress callback is running.

        Returns:
            False if callbacks were still running after ``timeout`` seconds.
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._dispatching == 0, timeout)

    def send_and_wait(
        self,
        transport: Writable,
        command: bytes,
        timeout_ms: int,
        *,
        keepalive: bool = False,
        report_progress: bool = True,
    ) -> bytes:
        """Write ``command`` and block until the response frame is complete.

        Args:
            transport: An open transport whose reader feeds this coordinator.
            command: Encoded command bytes.
            timeout_ms: Wait bound in milliseconds. With ``keepalive`` it
                bounds the silence between two chunks instead of the
                whole exchange.
            report_progress: Pass False to suppress progress callbacks.

        Returns:
            The frame payload.

        Raises:
            ProtocolViolation: If ``command`` is not a valid command.
            TransmissionTimeout: If the frame did not complete in time.
            RuntimeError: If another exchange is already in flight.
        """
        validate_command(command)
        if not self._in_flight.acquire(blocking=False):
            raise RuntimeError("Another transmission is already in flight")

        try:
            with self._cond:
                self._accumulator.reset(report_progress)
                self._completed = False
                self._active = True
                self._last_activity = time.monotonic()

            transport.write(command)

            with self._cond:
                if not self._wait_complete(timeout_ms / 1000.0, keepalive):
                    raise TransmissionTimeout(self._describe_timeout(timeout_ms))
                return self._accumulator.payload()
        finally:
            with self._cond:
                self._active = False
            self._in_flight.release()

    def _wait_complete(self, timeout: float, keepalive: bool) -> bool:
        # Caller holds self._cond
        started = time.monotonic()
        while not self._completed:
            base = self._last_activity if keepalive else started
            remaining = base + timeout - time.monotonic()
            if remaining <= 0:
                return False
            self._cond.wait(remaining)
        return True

    def _describe_timeout(self, timeout_ms: int) -> str:
        acc = self._accumulator
        if acc.state is FrameState.AWAITING_LENGTH:
            return f"No length prefix received within {timeout_ms} ms"
        return (
            f"Frame incomplete after {timeout_ms} ms: "
            f"{acc.received} of {acc.expected} bytes"
        )
