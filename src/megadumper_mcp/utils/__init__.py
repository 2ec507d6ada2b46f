"""Shared low-level helpers."""

from .byteswap import swap16, swap32, pack_u32, unpack_u32, unpack_u32_be
