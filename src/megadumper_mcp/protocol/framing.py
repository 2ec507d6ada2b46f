"""Length-prefixed response framing.

Frame layout::

    +--------------+------------------------------+
    | Length       | Payload                      |
    | 4 bytes LE   | exactly ``length`` bytes     |
    +--------------+------------------------------+

The device streams a frame in arbitrarily sized chunks. The accumulator
consumes them in arrival order and reports when the payload is complete.
It holds no lock of its own; the coordinator serializes access.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..utils.byteswap import unpack_u32

LENGTH_PREFIX_SIZE = 4


class FrameState(Enum):
    AWAITING_LENGTH = "awaiting_length"
    RECEIVING_PAYLOAD = "receiving_payload"
    COMPLETE = "complete"


@dataclass
class FeedResult:
    """Outcome of feeding one chunk to the accumulator."""

    completed: bool = False
    progress: int | None = None


class FrameAccumulator:
    """Reassembles one length-prefixed frame from a byte stream."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._expected = 0
        self._state = FrameState.AWAITING_LENGTH
        self._report_progress = True

    @property
    def state(self) -> FrameState:
        return self._state

    @property
    def expected(self) -> int:
        """Payload length announced by the prefix, 0 while unknown."""
        return self._expected

    @property
    def received(self) -> int:
        return len(self._buffer)

    @property
    def complete(self) -> bool:
        return self._state is FrameState.COMPLETE

    def reset(self, report_progress: bool = True) -> None:
        """Drop any buffered data and wait for a new length prefix."""
        self._buffer.clear()
        self._expected = 0
        self._state = FrameState.AWAITING_LENGTH
        self._report_progress = report_progress

    def feed(self, data: bytes) -> FeedResult:
        """Consume a chunk of incoming bytes.

        ``completed`` is True only for the chunk that finishes the frame.
        ``progress`` is 0 on the chunk carrying the length prefix and a
        percentage on every later chunk, or None when nothing is reported.
        """
        result = FeedResult()
        if self._state is FrameState.COMPLETE:
            return result

        self._buffer += data

        if self._state is FrameState.AWAITING_LENGTH:
            if len(self._buffer) < LENGTH_PREFIX_SIZE:
                return result
            self._expected = unpack_u32(self._buffer)
            del self._buffer[:LENGTH_PREFIX_SIZE]
            self._state = FrameState.RECEIVING_PAYLOAD
            if self._report_progress:
                result.progress = 0
        elif self._report_progress:
            result.progress = min(len(self._buffer) * 100 // self._expected, 100)

        if len(self._buffer) >= self._expected:
            self._state = FrameState.COMPLETE
            result.completed = True
        return result

    def payload(self) -> bytes:
        """Return the payload received so far, capped at the announced length."""
        if self._state is FrameState.AWAITING_LENGTH:
            return bytes(self._buffer)
        return bytes(self._buffer[: self._expected])
