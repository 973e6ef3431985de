from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .components import ComponentType, DataType
from .errors import LengthMismatchError
from .features import global_count
from .header import HEADER_SIZE, check_version, read_header, read_uint32s, write_header
from .tables import Semantic, Table, read_table, write_table

logger = logging.getLogger(__name__)

MAGIC = b"b3dm"
B3DM_HEADER_SIZE = 28

SEMANTICS: dict[str, Semantic] = {
    "BATCH_LENGTH": Semantic(ComponentType.UNSIGNED_INT, DataType.SCALAR, per_feature=False),
    "RTC_CENTER": Semantic(ComponentType.FLOAT, DataType.VEC3, per_feature=False),
}


@dataclass
class B3dm:
    """Batched 3D Model: feature table, optional batch table and one embedded GLB."""

    feature_table: Table
    batch_table: Table = field(default_factory=Table)
    glb: bytes = b""

    @property
    def batch_length(self) -> int:
        return global_count(self.feature_table, "BATCH_LENGTH", SEMANTICS)

    @property
    def rtc_center(self) -> list[float] | None:
        return self.feature_table.get_global("RTC_CENTER", SEMANTICS)

    @staticmethod
    def create(glb: bytes, batch_length: int = 0, *, batch_table: Table | None = None, rtc_center: Any = None) -> "B3dm":
        feature_table = Table()
        feature_table.set_inline("BATCH_LENGTH", batch_length)
        if rtc_center is not None:
            feature_table.set_inline("RTC_CENTER", list(rtc_center))
        return B3dm(feature_table, batch_table or Table(), glb)


def decode_b3dm(data: bytes, base: int = 0) -> B3dm:
    header = read_header(data, base)
    check_version(header, base)
    data = data[: header.byte_length]
    ft_json_len, ft_bin_len, bt_json_len, bt_bin_len = read_uint32s(data, HEADER_SIZE, 4, header, base)

    ft_offset = B3DM_HEADER_SIZE
    bt_offset = ft_offset + ft_json_len + ft_bin_len
    glb_offset = bt_offset + bt_json_len + bt_bin_len
    if glb_offset > header.byte_length:
        raise LengthMismatchError(
            f"b3dm sections end at byte {glb_offset}, byteLength is {header.byte_length}",
            offset=base + 8,
        )

    feature_table = read_table(data, ft_offset, ft_json_len, ft_bin_len, semantics=SEMANTICS, base=base)
    feature_table.require("BATCH_LENGTH")
    tile = B3dm(feature_table)
    batch_length = tile.batch_length
    feature_table.check_ranges(batch_length, SEMANTICS, base=base + ft_offset + ft_json_len)

    tile.batch_table = read_table(
        data, bt_offset, bt_json_len, bt_bin_len, strict_types=True, base=base, kind="batch table"
    )
    tile.batch_table.check_ranges(batch_length, base=base + bt_offset + bt_json_len, kind="batch table")
    tile.glb = bytes(data[glb_offset:])
    logger.debug("decoded b3dm: %d bytes, BATCH_LENGTH=%d, glb %d bytes", header.byte_length, batch_length, len(tile.glb))
    return tile


def encode_b3dm(tile: B3dm) -> bytes:
    ft_json, ft_bin = write_table(tile.feature_table, B3DM_HEADER_SIZE)
    bt_offset = B3DM_HEADER_SIZE + len(ft_json) + len(ft_bin)
    bt_json, bt_bin = write_table(tile.batch_table, bt_offset)
    byte_length = bt_offset + len(bt_json) + len(bt_bin) + len(tile.glb)
    head = write_header(MAGIC, byte_length, len(ft_json), len(ft_bin), len(bt_json), len(bt_bin))
    return b"".join([head, ft_json, ft_bin, bt_json, bt_bin, tile.glb])
