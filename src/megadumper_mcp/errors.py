"""Exception types raised by the transport and protocol layers.

Each type also derives from the closest builtin so callers that only know
about ``ConnectionError`` or ``TimeoutError`` still catch them.
"""

from __future__ import annotations


class DumperError(Exception):
    """Base class for all dumper communication failures."""


class PortUnavailableError(DumperError, ConnectionError):
    """The serial port is missing or already in use."""


class TransmissionTimeout(DumperError, TimeoutError):
    """No complete response frame arrived within the allowed time."""


class ProtocolViolation(DumperError, ValueError):
    """A command or response does not follow the wire protocol."""


class DumperIOError(DumperError, OSError):
    """Any other transport-level failure."""
