from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import LengthMismatchError
from .header import HEADER_SIZE, check_version, read_header, read_uint32s, write_header

if TYPE_CHECKING:
    from .codec import TileContent

logger = logging.getLogger(__name__)

MAGIC = b"cmpt"
CMPT_HEADER_SIZE = 16


@dataclass
class Cmpt:
    """Composite tile: an ordered list of inner tiles of any format, composites included."""

    tiles: list["TileContent"] = field(default_factory=list)


def split_cmpt(data: bytes, base: int = 0) -> list[tuple[int, bytes]]:
    """Return ``(offset, bytes)`` for each inner tile, offsets relative to ``data``.

    Each inner tile is delimited by its own header byteLength; together they must
    fit inside the composite. Bytes after the last inner tile are padding.
    """
    header = read_header(data, base)
    check_version(header, base)
    data = data[: header.byte_length]
    (tiles_length,) = read_uint32s(data, HEADER_SIZE, 1, header, base)

    inner: list[tuple[int, bytes]] = []
    offset = CMPT_HEADER_SIZE
    for _ in range(tiles_length):
        inner_header = read_header(data[offset:], base + offset)
        inner.append((offset, data[offset : offset + inner_header.byte_length]))
        offset += inner_header.byte_length

    if offset > header.byte_length:
        raise LengthMismatchError(
            f"cmpt holds {tiles_length} tiles ending at byte {offset}, byteLength is {header.byte_length}",
            offset=base + offset,
        )
    logger.debug(
        "split cmpt: %d bytes, %d inner tiles, %d trailing bytes",
        header.byte_length,
        tiles_length,
        header.byte_length - offset,
    )
    return inner


def join_cmpt(inner: list[bytes]) -> bytes:
    byte_length = CMPT_HEADER_SIZE + sum(len(tile) for tile in inner)
    return write_header(MAGIC, byte_length, len(inner)) + b"".join(inner)
