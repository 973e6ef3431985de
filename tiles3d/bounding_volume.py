from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence, Union

from .errors import InvalidBoundingVolumeError, InvalidJsonError
from .jsonutil import expect_object, is_number, unknown_keys
from .matrix import mat4_max_scale, mat4_transform_point, mat4_transform_vector

Vec3 = tuple[float, float, float]

_SHAPE_LENGTHS = {"box": 12, "region": 6, "sphere": 4}
_SHAPES = frozenset(_SHAPE_LENGTHS)


@dataclass(frozen=True)
class Box:
    center: Vec3
    x_axis: Vec3
    y_axis: Vec3
    z_axis: Vec3
    extra: dict[str, Any] = field(default_factory=dict, hash=False)

    @staticmethod
    def from_values(values: Sequence[float], extra: dict[str, Any] | None = None) -> "Box":
        v = list(values)
        return Box(tuple(v[0:3]), tuple(v[3:6]), tuple(v[6:9]), tuple(v[9:12]), dict(extra or {}))

    def values(self) -> list[float]:
        return [*self.center, *self.x_axis, *self.y_axis, *self.z_axis]

    def to_json(self) -> dict[str, Any]:
        return {"box": self.values(), **self.extra}

    def transform(self, matrix: Sequence[float]) -> "Box":
        return Box(
            mat4_transform_point(matrix, self.center),
            mat4_transform_vector(matrix, self.x_axis),
            mat4_transform_vector(matrix, self.y_axis),
            mat4_transform_vector(matrix, self.z_axis),
            dict(self.extra),
        )


@dataclass(frozen=True)
class Region:
    """Geographic region in EPSG:4979, longitudes/latitudes in radians.

    ``west > east`` is legal for regions crossing the antimeridian and is not
    checked. A region lives in a fixed geodetic frame, so ``transform`` returns it
    unchanged instead of failing.
    """

    west: float
    south: float
    east: float
    north: float
    min_height: float
    max_height: float
    extra: dict[str, Any] = field(default_factory=dict, hash=False)

    @staticmethod
    def from_values(values: Sequence[float], extra: dict[str, Any] | None = None) -> "Region":
        west, south, east, north, min_height, max_height = values
        return Region(west, south, east, north, min_height, max_height, dict(extra or {}))

    def values(self) -> list[float]:
        return [self.west, self.south, self.east, self.north, self.min_height, self.max_height]

    def to_json(self) -> dict[str, Any]:
        return {"region": self.values(), **self.extra}

    def transform(self, matrix: Sequence[float]) -> "Region":
        return self


@dataclass(frozen=True)
class Sphere:
    center: Vec3
    radius: float
    extra: dict[str, Any] = field(default_factory=dict, hash=False)

    @staticmethod
    def from_values(values: Sequence[float], extra: dict[str, Any] | None = None) -> "Sphere":
        x, y, z, r = values
        return Sphere((x, y, z), r, dict(extra or {}))

    def values(self) -> list[float]:
        return [*self.center, self.radius]

    def to_json(self) -> dict[str, Any]:
        return {"sphere": self.values(), **self.extra}

    def transform(self, matrix: Sequence[float]) -> "Sphere":
        return Sphere(
            mat4_transform_point(matrix, self.center),
            self.radius * mat4_max_scale(matrix),
            dict(self.extra),
        )


BoundingVolume = Union[Box, Region, Sphere]

_FACTORIES = {"box": Box.from_values, "region": Region.from_values, "sphere": Sphere.from_values}


def decode_bounding_volume(value: Any, path: str = "boundingVolume") -> BoundingVolume:
    obj = expect_object(value, path)
    shapes = [key for key in obj if key in _SHAPES]
    if not shapes:
        raise InvalidBoundingVolumeError("expected one of 'box', 'region' or 'sphere'", path=path)
    if len(shapes) > 1:
        raise InvalidBoundingVolumeError(f"ambiguous bounding volume, found {shapes}", path=path)

    shape = shapes[0]
    values = obj[shape]
    expected = _SHAPE_LENGTHS[shape]
    if not isinstance(values, list) or len(values) != expected:
        raise InvalidBoundingVolumeError(f"'{shape}' must be an array of {expected} numbers", path=f"{path}.{shape}")
    for i, item in enumerate(values):
        if not is_number(item):
            raise InvalidJsonError("expected a number", path=f"{path}.{shape}[{i}]")

    return _FACTORIES[shape](values, unknown_keys(obj, _SHAPES))


def encode_bounding_volume(volume: BoundingVolume) -> dict[str, Any]:
    return volume.to_json()
