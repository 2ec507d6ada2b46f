"""Command opcodes and builders.

Every host-to-device command starts with a single ASCII opcode byte.
Only the dump command carries a payload: two 32-bit addresses in wire
order::

    +--------+-------------+-------------+
    | 'd'    | start addr  | end addr    |
    | 1 byte | 4 bytes LE  | 4 bytes LE  |
    +--------+-------------+-------------+
"""

from __future__ import annotations

from enum import IntEnum

from ..errors import ProtocolViolation
from ..utils.byteswap import pack_u32

READ_TIMEOUT_MS = 500
HEADER_TIMEOUT_MS = 3000
DUMP_IDLE_TIMEOUT_MS = 3000

# Physical address window of the cartridge header
ROM_HEADER_WINDOW = (0x80, 0x100)

FIRMWARE_STRING = "GENDUMPER"


class Command(IntEnum):
    """Command opcodes."""

    VERSION = 0x76  # 'v'
    HEADER = 0x69  # 'i'
    DUMP = 0x64  # 'd'


# Total encoded length of each command, opcode included
COMMAND_LENGTHS: dict[Command, int] = {
    Command.VERSION: 1,
    Command.HEADER: 1,
    Command.DUMP: 9,
}


def build_command(command: Command, payload: bytes = b"") -> bytes:
    """Build the wire bytes for a command and validate them."""
    data = bytes([command.value]) + payload
    validate_command(data)
    return data


def build_version() -> bytes:
    """Build a Version query (``'v'``)."""
    return build_command(Command.VERSION)


def build_header() -> bytes:
    """Build a Header/Info query (``'i'``)."""
    return build_command(Command.HEADER)


def build_dump(start: int, end: int) -> bytes:
    """Build a Dump command for the physical range ``[start, end)``.

    Ordering of ``start`` and ``end`` is left to the caller.

    Raises:
        ValueError: If either address does not fit in 32 bits.
    """
    return build_command(Command.DUMP, pack_u32(start) + pack_u32(end))


def validate_command(data: bytes) -> Command:
    """Check that ``data`` is a complete, known command.

    Returns:
        The decoded opcode.

    Raises:
        ProtocolViolation: On an empty buffer, unknown opcode or wrong length.
    """
    if not data:
        raise ProtocolViolation("Empty command")
    try:
        command = Command(data[0])
    except ValueError:
        raise ProtocolViolation(f"Unknown opcode 0x{data[0]:02X}") from None
    expected = COMMAND_LENGTHS[command]
    if len(data) != expected:
        raise ProtocolViolation(
            f"{command.name} command must be {expected} bytes, got {len(data)}"
        )
    return command
