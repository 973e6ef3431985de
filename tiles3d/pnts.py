from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .components import ComponentType, DataType
from .errors import LengthMismatchError
from .features import global_count, oct_decode, read_positions, require_positions
from .header import HEADER_SIZE, check_version, read_header, read_uint32s, write_header
from .tables import Semantic, Table, read_table, write_table

logger = logging.getLogger(__name__)

MAGIC = b"pnts"
PNTS_HEADER_SIZE = 28

_BATCH_ID_TYPES = (ComponentType.UNSIGNED_BYTE, ComponentType.UNSIGNED_SHORT, ComponentType.UNSIGNED_INT)

SEMANTICS: dict[str, Semantic] = {
    "POSITION": Semantic(ComponentType.FLOAT, DataType.VEC3),
    "POSITION_QUANTIZED": Semantic(ComponentType.UNSIGNED_SHORT, DataType.VEC3),
    "RGBA": Semantic(ComponentType.UNSIGNED_BYTE, DataType.VEC4),
    "RGB": Semantic(ComponentType.UNSIGNED_BYTE, DataType.VEC3),
    "RGB565": Semantic(ComponentType.UNSIGNED_SHORT, DataType.SCALAR),
    "NORMAL": Semantic(ComponentType.FLOAT, DataType.VEC3),
    "NORMAL_OCT16P": Semantic(ComponentType.UNSIGNED_BYTE, DataType.VEC2),
    "BATCH_ID": Semantic(ComponentType.UNSIGNED_SHORT, DataType.SCALAR, allowed=_BATCH_ID_TYPES),
    "POINTS_LENGTH": Semantic(ComponentType.UNSIGNED_INT, DataType.SCALAR, per_feature=False),
    "RTC_CENTER": Semantic(ComponentType.FLOAT, DataType.VEC3, per_feature=False),
    "QUANTIZED_VOLUME_OFFSET": Semantic(ComponentType.FLOAT, DataType.VEC3, per_feature=False),
    "QUANTIZED_VOLUME_SCALE": Semantic(ComponentType.FLOAT, DataType.VEC3, per_feature=False),
    "CONSTANT_RGBA": Semantic(ComponentType.UNSIGNED_BYTE, DataType.VEC4, per_feature=False),
    "BATCH_LENGTH": Semantic(ComponentType.UNSIGNED_INT, DataType.SCALAR, per_feature=False),
}


def _rgb565_to_rgba(value: int) -> tuple[int, int, int, int]:
    r = (value >> 11) & 0x1F
    g = (value >> 5) & 0x3F
    b = value & 0x1F
    return (r * 255 // 31, g * 255 // 63, b * 255 // 31, 255)


@dataclass
class Pnts:
    """Point cloud tile. The feature table is the payload; there is no glTF."""

    feature_table: Table
    batch_table: Table = field(default_factory=Table)

    @property
    def points_length(self) -> int:
        return global_count(self.feature_table, "POINTS_LENGTH", SEMANTICS)

    @property
    def rtc_center(self) -> list[float] | None:
        return self.feature_table.get_global("RTC_CENTER", SEMANTICS)

    @property
    def batch_length(self) -> int | None:
        if "BATCH_LENGTH" not in self.feature_table:
            return None
        return global_count(self.feature_table, "BATCH_LENGTH", SEMANTICS)

    def positions(self) -> list[tuple[float, float, float]]:
        return read_positions(self.feature_table, self.points_length, SEMANTICS)

    def colors(self) -> list[tuple[int, int, int, int]] | None:
        """Per-point RGBA, falling back from RGBA to RGB, RGB565 and CONSTANT_RGBA."""
        count = self.points_length
        table = self.feature_table
        rgba = table.get_values("RGBA", count, SEMANTICS)
        if rgba is not None:
            return rgba
        rgb = table.get_values("RGB", count, SEMANTICS)
        if rgb is not None:
            return [(r, g, b, 255) for r, g, b in rgb]
        rgb565 = table.get_values("RGB565", count, SEMANTICS)
        if rgb565 is not None:
            return [_rgb565_to_rgba(v) for v in rgb565]
        constant = table.get_global("CONSTANT_RGBA", SEMANTICS)
        if constant is not None:
            return [tuple(constant)] * count
        return None

    def normals(self) -> list[tuple[float, float, float]] | None:
        count = self.points_length
        normals = self.feature_table.get_values("NORMAL", count, SEMANTICS)
        if normals is not None:
            return normals
        encoded = self.feature_table.get_values("NORMAL_OCT16P", count, SEMANTICS)
        if encoded is None:
            return None
        return [oct_decode(x, y, 255.0) for x, y in encoded]

    def batch_ids(self) -> list[int] | None:
        return self.feature_table.get_values("BATCH_ID", self.points_length, SEMANTICS)

    @staticmethod
    def create(
        positions: list[tuple[float, float, float]],
        *,
        colors: list[tuple[int, int, int]] | None = None,
        rtc_center: Any = None,
    ) -> "Pnts":
        feature_table = Table()
        feature_table.set_inline("POINTS_LENGTH", len(positions))
        if rtc_center is not None:
            feature_table.set_inline("RTC_CENTER", list(rtc_center))
        feature_table.set_binary("POSITION", positions, ComponentType.FLOAT, DataType.VEC3, explicit=False)
        if colors is not None:
            feature_table.set_binary("RGB", colors, ComponentType.UNSIGNED_BYTE, DataType.VEC3, explicit=False)
        return Pnts(feature_table)


def decode_pnts(data: bytes, base: int = 0) -> Pnts:
    header = read_header(data, base)
    check_version(header, base)
    data = data[: header.byte_length]
    ft_json_len, ft_bin_len, bt_json_len, bt_bin_len = read_uint32s(data, HEADER_SIZE, 4, header, base)

    ft_offset = PNTS_HEADER_SIZE
    bt_offset = ft_offset + ft_json_len + ft_bin_len
    end = bt_offset + bt_json_len + bt_bin_len
    if end != header.byte_length:
        raise LengthMismatchError(
            f"pnts sections end at byte {end}, byteLength is {header.byte_length}",
            offset=base + 8,
        )

    feature_table = read_table(data, ft_offset, ft_json_len, ft_bin_len, semantics=SEMANTICS, base=base)
    feature_table.require("POINTS_LENGTH")
    require_positions(feature_table)
    if "BATCH_ID" in feature_table:
        feature_table.require("BATCH_LENGTH")
    tile = Pnts(feature_table)
    points_length = tile.points_length
    feature_table.check_ranges(points_length, SEMANTICS, base=base + ft_offset + ft_json_len)

    tile.batch_table = read_table(
        data, bt_offset, bt_json_len, bt_bin_len, strict_types=True, base=base, kind="batch table"
    )
    batch_length = tile.batch_length if "BATCH_ID" in feature_table else points_length
    tile.batch_table.check_ranges(batch_length, base=base + bt_offset + bt_json_len, kind="batch table")
    logger.debug("decoded pnts: %d bytes, POINTS_LENGTH=%d", header.byte_length, points_length)
    return tile


def encode_pnts(tile: Pnts) -> bytes:
    ft_json, ft_bin = write_table(tile.feature_table, PNTS_HEADER_SIZE)
    bt_offset = PNTS_HEADER_SIZE + len(ft_json) + len(ft_bin)
    bt_json, bt_bin = write_table(tile.batch_table, bt_offset)
    byte_length = bt_offset + len(bt_json) + len(bt_bin)
    head = write_header(MAGIC, byte_length, len(ft_json), len(ft_bin), len(bt_json), len(bt_bin))
    return b"".join([head, ft_json, ft_bin, bt_json, bt_bin])
