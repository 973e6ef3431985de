from __future__ import annotations

import struct
from dataclasses import dataclass

GLB_MAGIC = b"glTF"

CHUNK_TYPE_JSON = 0x4E4F534A  # b"JSON"
CHUNK_TYPE_BIN = 0x004E4942  # b"BIN\0"

_CHUNK_NAMES = {CHUNK_TYPE_JSON: "JSON", CHUNK_TYPE_BIN: "BIN"}


class GlbError(RuntimeError):
    pass


@dataclass(frozen=True)
class GlbHeader:
    version: int
    length: int
    chunks: tuple[tuple[str, int], ...]


def is_glb(data: bytes) -> bool:
    return bytes(data[:4]) == GLB_MAGIC


def read_glb_header(data: bytes) -> GlbHeader:
    """Read the GLB header and chunk table of an embedded payload without parsing it."""
    if len(data) < 12:
        raise GlbError("Invalid GLB: too small")

    magic, version, total_length = struct.unpack_from("<4sII", data, 0)
    if magic != GLB_MAGIC:
        raise GlbError("Invalid GLB: bad magic")
    if total_length > len(data):
        raise GlbError("Invalid GLB: length exceeds payload")

    chunks: list[tuple[str, int]] = []
    offset = 12
    while offset < total_length:
        if offset + 8 > total_length:
            raise GlbError("Invalid GLB: truncated chunk header")
        chunk_length, chunk_type = struct.unpack_from("<II", data, offset)
        offset += 8
        if offset + chunk_length > total_length:
            raise GlbError("Invalid GLB: truncated chunk data")
        chunks.append((_CHUNK_NAMES.get(chunk_type, f"0x{chunk_type:08X}"), chunk_length))
        offset += chunk_length

    return GlbHeader(version, total_length, tuple(chunks))
