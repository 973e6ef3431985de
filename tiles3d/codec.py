from __future__ import annotations

import logging
from typing import Any, Callable, Union

from . import b3dm, cmpt, i3dm, pnts
from .b3dm import B3dm, decode_b3dm, encode_b3dm
from .cmpt import Cmpt, join_cmpt, split_cmpt
from .config import DEFAULT_CONFIG, CodecConfig
from .errors import NestingTooDeepError, TruncatedInputError, UnknownMagicError
from .i3dm import I3dm, decode_i3dm, encode_i3dm
from .pnts import Pnts, decode_pnts, encode_pnts
from .tileset import Tileset, decode_tileset, encode_tileset

logger = logging.getLogger(__name__)

TileContent = Union[B3dm, I3dm, Pnts, Cmpt]

_DECODERS: dict[bytes, Callable[[bytes, int], Any]] = {
    b3dm.MAGIC: decode_b3dm,
    i3dm.MAGIC: decode_i3dm,
    pnts.MAGIC: decode_pnts,
}

_ENCODERS: dict[type, Callable[[Any], bytes]] = {
    B3dm: encode_b3dm,
    I3dm: encode_i3dm,
    Pnts: encode_pnts,
}

_KINDS = {b3dm.MAGIC: "b3dm", i3dm.MAGIC: "i3dm", pnts.MAGIC: "pnts", cmpt.MAGIC: "cmpt"}


def sniff(data: bytes) -> str:
    """Name the format of ``data``: 'tileset' for JSON, else the tile magic."""
    kind = _KINDS.get(bytes(data[:4]))
    if kind is not None:
        return kind
    if bytes(data).lstrip(b"\xef\xbb\xbf \t\r\n")[:1] == b"{":
        return "tileset"
    if len(data) < 4:
        raise TruncatedInputError(f"cannot identify {len(data)} bytes of input", offset=len(data))
    raise UnknownMagicError(f"unknown tile format magic {bytes(data[:4])!r}", offset=0)


def decode_content(
    data: bytes,
    base: int = 0,
    *,
    config: CodecConfig | None = None,
    depth: int = 0,
) -> TileContent:
    """Decode one binary tile; composites recurse into their inner tiles.

    ``base`` is the offset of ``data`` in the outermost buffer and only affects
    error offsets.
    """
    config = config or DEFAULT_CONFIG
    magic = bytes(data[:4])
    if magic == cmpt.MAGIC:
        if depth >= config.max_composite_depth:
            raise NestingTooDeepError(
                f"composite tiles nested deeper than {config.max_composite_depth}", offset=base
            )
        tiles = [
            decode_content(inner, base + offset, config=config, depth=depth + 1)
            for offset, inner in split_cmpt(data, base)
        ]
        return Cmpt(tiles)

    decoder = _DECODERS.get(magic)
    if decoder is None:
        if len(data) < 4:
            raise TruncatedInputError(f"cannot identify {len(data)} bytes of tile content", offset=base + len(data))
        raise UnknownMagicError(f"unknown tile format magic {magic!r}", offset=base)
    return decoder(data, base)


def encode_content(tile: TileContent) -> bytes:
    if isinstance(tile, Cmpt):
        return join_cmpt([encode_content(inner) for inner in tile.tiles])
    encoder = _ENCODERS.get(type(tile))
    if encoder is None:
        raise TypeError(f"not a tile content value: {type(tile).__name__}")
    return encoder(tile)


def decode(data: bytes | str, config: CodecConfig | None = None) -> Tileset | TileContent:
    if isinstance(data, str):
        return decode_tileset(data, config)
    kind = sniff(data)
    logger.debug("decoding %d bytes as %s", len(data), kind)
    if kind == "tileset":
        return decode_tileset(bytes(data), config)
    return decode_content(data, config=config)


def encode(value: Tileset | TileContent, config: CodecConfig | None = None) -> bytes | str:
    config = config or DEFAULT_CONFIG
    if isinstance(value, Tileset):
        return encode_tileset(value, indent=config.json_indent)
    return encode_content(value)
