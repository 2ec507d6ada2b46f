"""Host driver and MCP server for the Mega Dumper cartridge reader."""

from .dumper import MegaDumper, is_genuine
from .errors import (
    DumperError,
    DumperIOError,
    PortUnavailableError,
    ProtocolViolation,
    TransmissionTimeout,
)

__version__ = "0.1.0"
