from __future__ import annotations

import struct
from dataclasses import dataclass

from .errors import LengthMismatchError, TruncatedInputError, UnsupportedVersionError

HEADER_SIZE = 12
SUPPORTED_VERSION = 1
ALIGNMENT = 8

_HEADER = struct.Struct("<4sII")


@dataclass(frozen=True)
class Header:
    magic: bytes
    version: int
    byte_length: int


def read_header(data: bytes, base: int = 0) -> Header:
    """Read the 12-byte magic/version/byteLength prefix shared by every tile format.

    ``data`` must hold at least ``byteLength`` bytes; anything after that is ignored.
    """
    if len(data) < HEADER_SIZE:
        raise TruncatedInputError(
            f"tile header needs {HEADER_SIZE} bytes, only {len(data)} available",
            offset=base + len(data),
        )
    magic, version, byte_length = _HEADER.unpack_from(data, 0)
    if byte_length < HEADER_SIZE:
        raise LengthMismatchError(
            f"byteLength {byte_length} is smaller than the {HEADER_SIZE}-byte header",
            offset=base + 8,
        )
    if byte_length > len(data):
        raise TruncatedInputError(
            f"byteLength declares {byte_length} bytes, only {len(data)} available",
            offset=base + len(data),
        )
    return Header(magic, version, byte_length)


def check_version(header: Header, base: int = 0) -> None:
    if header.version != SUPPORTED_VERSION:
        raise UnsupportedVersionError(
            f"unsupported {header.magic.decode('ascii', 'replace')} version {header.version} "
            f"(expected {SUPPORTED_VERSION})",
            offset=base + 4,
        )


def read_uint32s(data: bytes, offset: int, count: int, header: Header, base: int = 0) -> tuple[int, ...]:
    """Read the format-specific uint32 fields following the common header."""
    end = offset + 4 * count
    if end > header.byte_length:
        raise LengthMismatchError(
            f"{header.magic.decode('ascii', 'replace')} header needs {end} bytes, byteLength is {header.byte_length}",
            offset=base + 8,
        )
    return struct.unpack_from(f"<{count}I", data, offset)


def write_header(magic: bytes, byte_length: int, *fields: int, version: int = SUPPORTED_VERSION) -> bytes:
    return _HEADER.pack(magic, version, byte_length) + struct.pack(f"<{len(fields)}I", *fields)


def padding_for(offset: int, alignment: int = ALIGNMENT) -> int:
    return (alignment - offset % alignment) % alignment
