"""Cartridge header as seen by the dump flow.

Only the two ROM address fields are decoded; everything else stays in
``raw`` for whoever wants to interpret it::

    +-------------+-------------+--------------------------+
    | ROM start   | ROM end     | remaining header bytes   |
    | 4 bytes BE  | 4 bytes BE  | opaque                   |
    +-------------+-------------+--------------------------+
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ProtocolViolation
from ..utils.byteswap import unpack_u32_be

OFF_ROM_START = 0x00  # 4 bytes (big-endian)
OFF_ROM_END = 0x04  # 4 bytes (big-endian)
MIN_HEADER_SIZE = 8


@dataclass
class RomHeader:
    """Header region read back from a cartridge."""

    raw: bytes = b""
    rom_start: int = 0
    rom_end: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> RomHeader:
        """Extract the ROM address range from a header payload.

        Raises:
            ProtocolViolation: If the payload is too short to hold both fields.
        """
        if len(data) < MIN_HEADER_SIZE:
            raise ProtocolViolation(
                f"Header payload too short: {len(data)} bytes "
                f"(need at least {MIN_HEADER_SIZE})"
            )
        return cls(
            raw=bytes(data),
            rom_start=unpack_u32_be(data, OFF_ROM_START),
            rom_end=unpack_u32_be(data, OFF_ROM_END),
        )

    def to_dict(self) -> dict:
        return {
            "rom_start": f"0x{self.rom_start:08X}",
            "rom_end": f"0x{self.rom_end:08X}",
            "raw_hex": self.raw.hex(" ") if self.raw else "",
            "raw_length": len(self.raw),
        }

    def __repr__(self) -> str:
        return (
            f"RomHeader(rom_start=0x{self.rom_start:08X}, "
            f"rom_end=0x{self.rom_end:08X})"
        )
