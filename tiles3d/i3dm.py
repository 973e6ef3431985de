from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .components import ComponentType, DataType
from .errors import InvalidFieldError, LengthMismatchError
from .features import QUANTIZED_MAX, global_count, oct_decode, read_positions, require_positions
from .header import HEADER_SIZE, check_version, read_header, read_uint32s, write_header
from .tables import Semantic, Table, read_table, write_table

logger = logging.getLogger(__name__)

MAGIC = b"i3dm"
I3DM_HEADER_SIZE = 32

GLTF_FORMAT_URI = 0
GLTF_FORMAT_EMBEDDED = 1

_BATCH_ID_TYPES = (ComponentType.UNSIGNED_BYTE, ComponentType.UNSIGNED_SHORT, ComponentType.UNSIGNED_INT)

SEMANTICS: dict[str, Semantic] = {
    "POSITION": Semantic(ComponentType.FLOAT, DataType.VEC3),
    "POSITION_QUANTIZED": Semantic(ComponentType.UNSIGNED_SHORT, DataType.VEC3),
    "NORMAL_UP": Semantic(ComponentType.FLOAT, DataType.VEC3),
    "NORMAL_RIGHT": Semantic(ComponentType.FLOAT, DataType.VEC3),
    "NORMAL_UP_OCT32P": Semantic(ComponentType.UNSIGNED_SHORT, DataType.VEC2),
    "NORMAL_RIGHT_OCT32P": Semantic(ComponentType.UNSIGNED_SHORT, DataType.VEC2),
    "SCALE": Semantic(ComponentType.FLOAT, DataType.SCALAR),
    "SCALE_NON_UNIFORM": Semantic(ComponentType.FLOAT, DataType.VEC3),
    "BATCH_ID": Semantic(ComponentType.UNSIGNED_SHORT, DataType.SCALAR, allowed=_BATCH_ID_TYPES),
    "INSTANCES_LENGTH": Semantic(ComponentType.UNSIGNED_INT, DataType.SCALAR, per_feature=False),
    "RTC_CENTER": Semantic(ComponentType.FLOAT, DataType.VEC3, per_feature=False),
    "QUANTIZED_VOLUME_OFFSET": Semantic(ComponentType.FLOAT, DataType.VEC3, per_feature=False),
    "QUANTIZED_VOLUME_SCALE": Semantic(ComponentType.FLOAT, DataType.VEC3, per_feature=False),
}


@dataclass
class I3dm:
    """Instanced 3D Model: per-instance transforms of one glTF model.

    With ``gltf_format`` 1 ``gltf`` holds an embedded GLB, with 0 it holds a UTF-8
    URI of an external glTF.
    """

    feature_table: Table
    batch_table: Table = field(default_factory=Table)
    gltf_format: int = GLTF_FORMAT_EMBEDDED
    gltf: bytes = b""

    @property
    def instances_length(self) -> int:
        return global_count(self.feature_table, "INSTANCES_LENGTH", SEMANTICS)

    @property
    def gltf_uri(self) -> str | None:
        if self.gltf_format != GLTF_FORMAT_URI:
            return None
        return self.gltf.rstrip(b" \x00").decode("utf-8")

    @property
    def rtc_center(self) -> list[float] | None:
        return self.feature_table.get_global("RTC_CENTER", SEMANTICS)

    @property
    def east_north_up(self) -> bool:
        return bool(self.feature_table.get_global("EAST_NORTH_UP"))

    def positions(self) -> list[tuple[float, float, float]]:
        return read_positions(self.feature_table, self.instances_length, SEMANTICS)

    def _normals(self, name: str) -> list[tuple[float, float, float]] | None:
        count = self.instances_length
        normals = self.feature_table.get_values(name, count, SEMANTICS)
        if normals is not None:
            return normals
        encoded = self.feature_table.get_values(f"{name}_OCT32P", count, SEMANTICS)
        if encoded is None:
            return None
        return [oct_decode(x, y, QUANTIZED_MAX) for x, y in encoded]

    def normals_up(self) -> list[tuple[float, float, float]] | None:
        return self._normals("NORMAL_UP")

    def normals_right(self) -> list[tuple[float, float, float]] | None:
        return self._normals("NORMAL_RIGHT")

    def scales(self) -> list[Any] | None:
        count = self.instances_length
        non_uniform = self.feature_table.get_values("SCALE_NON_UNIFORM", count, SEMANTICS)
        if non_uniform is not None:
            return non_uniform
        return self.feature_table.get_values("SCALE", count, SEMANTICS)

    def batch_ids(self) -> list[int] | None:
        return self.feature_table.get_values("BATCH_ID", self.instances_length, SEMANTICS)

    def batch_length(self) -> int:
        batch_ids = self.batch_ids()
        if batch_ids is None:
            return self.instances_length
        return max(batch_ids, default=-1) + 1

    @staticmethod
    def create(
        positions: list[tuple[float, float, float]],
        gltf: bytes,
        *,
        gltf_format: int = GLTF_FORMAT_EMBEDDED,
        batch_table: Table | None = None,
    ) -> "I3dm":
        feature_table = Table()
        feature_table.set_inline("INSTANCES_LENGTH", len(positions))
        feature_table.set_binary("POSITION", positions, ComponentType.FLOAT, DataType.VEC3, explicit=False)
        return I3dm(feature_table, batch_table or Table(), gltf_format, gltf)


def decode_i3dm(data: bytes, base: int = 0) -> I3dm:
    header = read_header(data, base)
    check_version(header, base)
    data = data[: header.byte_length]
    ft_json_len, ft_bin_len, bt_json_len, bt_bin_len, gltf_format = read_uint32s(data, HEADER_SIZE, 5, header, base)
    if gltf_format not in (GLTF_FORMAT_URI, GLTF_FORMAT_EMBEDDED):
        raise InvalidFieldError(f"gltfFormat must be 0 or 1, got {gltf_format}", offset=base + 28)

    ft_offset = I3DM_HEADER_SIZE
    bt_offset = ft_offset + ft_json_len + ft_bin_len
    gltf_offset = bt_offset + bt_json_len + bt_bin_len
    if gltf_offset > header.byte_length:
        raise LengthMismatchError(
            f"i3dm sections end at byte {gltf_offset}, byteLength is {header.byte_length}",
            offset=base + 8,
        )

    feature_table = read_table(data, ft_offset, ft_json_len, ft_bin_len, semantics=SEMANTICS, base=base)
    feature_table.require("INSTANCES_LENGTH")
    require_positions(feature_table)
    tile = I3dm(feature_table, gltf_format=gltf_format)
    instances_length = tile.instances_length
    feature_table.check_ranges(instances_length, SEMANTICS, base=base + ft_offset + ft_json_len)

    tile.batch_table = read_table(
        data, bt_offset, bt_json_len, bt_bin_len, strict_types=True, base=base, kind="batch table"
    )
    if not tile.batch_table.is_empty():
        tile.batch_table.check_ranges(tile.batch_length(), base=base + bt_offset + bt_json_len, kind="batch table")
    tile.gltf = bytes(data[gltf_offset:])
    logger.debug(
        "decoded i3dm: %d bytes, INSTANCES_LENGTH=%d, gltfFormat=%d", header.byte_length, instances_length, gltf_format
    )
    return tile


def encode_i3dm(tile: I3dm) -> bytes:
    if tile.gltf_format not in (GLTF_FORMAT_URI, GLTF_FORMAT_EMBEDDED):
        raise InvalidFieldError(f"gltfFormat must be 0 or 1, got {tile.gltf_format}")
    ft_json, ft_bin = write_table(tile.feature_table, I3DM_HEADER_SIZE)
    bt_offset = I3DM_HEADER_SIZE + len(ft_json) + len(ft_bin)
    bt_json, bt_bin = write_table(tile.batch_table, bt_offset)
    byte_length = bt_offset + len(bt_json) + len(bt_bin) + len(tile.gltf)
    head = write_header(MAGIC, byte_length, len(ft_json), len(ft_bin), len(bt_json), len(bt_bin), tile.gltf_format)
    return b"".join([head, ft_json, ft_bin, bt_json, bt_bin, tile.gltf])
