"""Protocol layer: command builders, response framing, and exchange coordination."""

from .commands import Command, build_command, build_dump, build_header, build_version
from .coordinator import TransmissionCoordinator
from .framing import FrameAccumulator, FrameState
