"""Tests for byte order helpers."""

import pytest

from megadumper_mcp.utils.byteswap import (
    U16_MAX,
    U32_MAX,
    pack_u32,
    swap16,
    swap32,
    unpack_u32,
    unpack_u32_be,
)


def test_swap16_known_value():
    assert swap16(0x1234) == 0x3412
    assert swap16(0x00FF) == 0xFF00


def test_swap32_known_value():
    assert swap32(0x12345678) == 0x78563412
    assert swap32(0x00000080) == 0x80000000


@pytest.mark.parametrize("x", [0, 1, 0x00FF, 0xFF00, 0x1234, 0xBEEF, U16_MAX])
def test_swap16_involutive(x):
    assert swap16(swap16(x)) == x


@pytest.mark.parametrize("x", [0, 1, 0x80, 0x100, 0x12345678, 0xDEADBEEF, U32_MAX])
def test_swap32_involutive(x):
    assert swap32(swap32(x)) == x


def test_swap_masks_wide_input():
    """Bits above the integer width are ignored."""
    assert swap16(0x1_1234) == 0x3412
    assert swap32(0x1_12345678) == 0x78563412


def test_pack_u32_is_little_endian():
    assert pack_u32(0x80) == b"\x80\x00\x00\x00"
    assert pack_u32(0x12345678) == b"\x78\x56\x34\x12"


def test_pack_u32_range():
    with pytest.raises(ValueError):
        pack_u32(-1)
    with pytest.raises(ValueError):
        pack_u32(U32_MAX + 1)


def test_unpack_u32_offset():
    data = b"\xAA\x00\x01\x00\x00"
    assert unpack_u32(data, 1) == 0x100


def test_unpack_u32_short_buffer():
    with pytest.raises(ValueError):
        unpack_u32(b"\x01\x02\x03")


def test_unpack_u32_be_reads_cartridge_order():
    """Header fields are big-endian and decode through swap32."""
    data = bytes.fromhex("00 20 00 00")
    assert unpack_u32_be(data) == 0x00200000
    assert unpack_u32_be(data) == swap32(unpack_u32(data))
