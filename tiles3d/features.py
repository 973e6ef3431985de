from __future__ import annotations

from typing import Mapping

from .errors import MissingRequiredSemanticError, TypeMismatchError
from .tables import Semantic, Table

QUANTIZED_MAX = 65535.0


def dequantize(
    values: list[tuple[int, int, int]], volume_offset: list[float], volume_scale: list[float]
) -> list[tuple[float, float, float]]:
    ox, oy, oz = volume_offset
    sx, sy, sz = volume_scale
    return [
        (ox + x * sx / QUANTIZED_MAX, oy + y * sy / QUANTIZED_MAX, oz + z * sz / QUANTIZED_MAX)
        for x, y, z in values
    ]


def oct_decode(x: int, y: int, range_max: float) -> tuple[float, float, float]:
    """Decode an oct-encoded unit vector with components in [0, range_max]."""
    fx = x / range_max * 2.0 - 1.0
    fy = y / range_max * 2.0 - 1.0
    fz = 1.0 - abs(fx) - abs(fy)
    if fz < 0.0:
        fx, fy = (
            (1.0 - abs(fy)) * (1.0 if fx >= 0.0 else -1.0),
            (1.0 - abs(fx)) * (1.0 if fy >= 0.0 else -1.0),
        )
    length = (fx * fx + fy * fy + fz * fz) ** 0.5
    return (fx / length, fy / length, fz / length)


def require_positions(table: Table, kind: str = "feature table") -> None:
    if "POSITION" in table:
        return
    if "POSITION_QUANTIZED" not in table:
        raise MissingRequiredSemanticError(f"{kind} needs 'POSITION' or 'POSITION_QUANTIZED'", path=f"{kind}.POSITION")
    for name in ("QUANTIZED_VOLUME_OFFSET", "QUANTIZED_VOLUME_SCALE"):
        table.require(name, kind)


def read_positions(table: Table, count: int, semantics: Mapping[str, Semantic]) -> list[tuple[float, float, float]]:
    positions = table.get_values("POSITION", count, semantics)
    if positions is not None:
        return positions
    quantized = table.get_values("POSITION_QUANTIZED", count, semantics) or []
    return dequantize(
        quantized,
        table.get_global("QUANTIZED_VOLUME_OFFSET", semantics),
        table.get_global("QUANTIZED_VOLUME_SCALE", semantics),
    )


def global_count(table: Table, name: str, semantics: Mapping[str, Semantic]) -> int:
    """Per-tile count such as BATCH_LENGTH: a number, a one-element array or one binary element."""
    value = table.get_global(name, semantics)
    if isinstance(value, list) and len(value) == 1:
        value = value[0]
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise TypeMismatchError(f"{name} must be a non-negative integer, got {value!r}", path=f"feature table.{name}")
    return value
