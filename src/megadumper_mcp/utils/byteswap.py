"""Byte order helpers.

The dumper firmware speaks little-endian on the wire (length prefixes and
dump addresses), while the cartridge's 68000 stores multi-byte header
fields big-endian. Every integer that crosses either boundary goes through
this module.
"""

from __future__ import annotations

U16_MAX = 0xFFFF
U32_MAX = 0xFFFFFFFF


def swap16(x: int) -> int:
    """Reverse the byte order of a 16-bit unsigned integer."""
    x &= U16_MAX
    return ((x & 0xFF) << 8) | ((x >> 8) & 0xFF)


def swap32(x: int) -> int:
    """Reverse the byte order of a 32-bit unsigned integer."""
    x &= U32_MAX
    return (
        ((x & 0x000000FF) << 24)
        | ((x & 0x0000FF00) << 8)
        | ((x & 0x00FF0000) >> 8)
        | ((x & 0xFF000000) >> 24)
    )


def pack_u32(value: int) -> bytes:
    """Encode a 32-bit unsigned integer in wire order.

    Raises:
        ValueError: If ``value`` does not fit in 32 bits.
    """
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"Value must be 0-{U32_MAX:#x}, got {value:#x}")
    return value.to_bytes(4, "little")


def unpack_u32(data: bytes, offset: int = 0) -> int:
    """Decode a 32-bit unsigned integer in wire order."""
    if len(data) < offset + 4:
        raise ValueError(
            f"Need 4 bytes at offset {offset}, buffer has {len(data)}"
        )
    return int.from_bytes(data[offset : offset + 4], "little")


def unpack_u32_be(data: bytes, offset: int = 0) -> int:
    """Decode a 32-bit unsigned integer stored in cartridge (big-endian) order."""
    return swap32(unpack_u32(data, offset))
