from __future__ import annotations

import struct
from enum import Enum
from typing import Any, Iterable

from .errors import OutOfBoundsError, TypeMismatchError


class ComponentType(str, Enum):
    BYTE = "BYTE"
    UNSIGNED_BYTE = "UNSIGNED_BYTE"
    SHORT = "SHORT"
    UNSIGNED_SHORT = "UNSIGNED_SHORT"
    INT = "INT"
    UNSIGNED_INT = "UNSIGNED_INT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"

    @property
    def size(self) -> int:
        return _COMPONENT_FORMATS[self][1]

    @property
    def code(self) -> str:
        return _COMPONENT_FORMATS[self][0]

    @property
    def is_integer(self) -> bool:
        return self not in (ComponentType.FLOAT, ComponentType.DOUBLE)

    @staticmethod
    def parse(value: Any, path: str | None = None) -> "ComponentType":
        try:
            return ComponentType(value)
        except ValueError:
            raise TypeMismatchError(f"unknown componentType {value!r}", path=path) from None


class DataType(str, Enum):
    SCALAR = "SCALAR"
    VEC2 = "VEC2"
    VEC3 = "VEC3"
    VEC4 = "VEC4"

    @property
    def count(self) -> int:
        return _TYPE_COMPONENT_COUNT[self]

    @staticmethod
    def parse(value: Any, path: str | None = None) -> "DataType":
        try:
            return DataType(value)
        except ValueError:
            raise TypeMismatchError(f"unknown type {value!r}", path=path) from None


_COMPONENT_FORMATS: dict[ComponentType, tuple[str, int]] = {
    ComponentType.BYTE: ("b", 1),
    ComponentType.UNSIGNED_BYTE: ("B", 1),
    ComponentType.SHORT: ("h", 2),
    ComponentType.UNSIGNED_SHORT: ("H", 2),
    ComponentType.INT: ("i", 4),
    ComponentType.UNSIGNED_INT: ("I", 4),
    ComponentType.FLOAT: ("f", 4),
    ComponentType.DOUBLE: ("d", 8),
}

_TYPE_COMPONENT_COUNT: dict[DataType, int] = {
    DataType.SCALAR: 1,
    DataType.VEC2: 2,
    DataType.VEC3: 3,
    DataType.VEC4: 4,
}

# One little-endian element codec per (componentType, type) pair.
CODECS: dict[tuple[ComponentType, DataType], struct.Struct] = {
    (component_type, data_type): struct.Struct("<" + fmt * _TYPE_COMPONENT_COUNT[data_type])
    for component_type, (fmt, _size) in _COMPONENT_FORMATS.items()
    for data_type in DataType
}


def element_size(component_type: ComponentType, data_type: DataType) -> int:
    return CODECS[(component_type, data_type)].size


def read_values(
    buffer: bytes,
    byte_offset: int,
    count: int,
    component_type: ComponentType,
    data_type: DataType,
) -> list[Any]:
    codec = CODECS[(component_type, data_type)]
    end = byte_offset + count * codec.size
    if byte_offset < 0 or count < 0 or end > len(buffer):
        raise OutOfBoundsError(
            f"{count} x {component_type.value} {data_type.value} at byteOffset {byte_offset} "
            f"exceeds binary body of {len(buffer)} bytes",
            offset=byte_offset,
        )
    values = codec.iter_unpack(buffer[byte_offset:end])
    if data_type is DataType.SCALAR:
        return [v[0] for v in values]
    return list(values)


def _check_component(value: Any, component_type: ComponentType) -> None:
    if isinstance(value, bool):
        raise TypeMismatchError(f"boolean value {value!r} for {component_type.value}")
    if component_type.is_integer:
        if not isinstance(value, int):
            raise TypeMismatchError(f"value {value!r} is not an integer for {component_type.value}")
    elif not isinstance(value, (int, float)):
        raise TypeMismatchError(f"value {value!r} is not a number for {component_type.value}")


def write_values(values: Iterable[Any], component_type: ComponentType, data_type: DataType) -> bytes:
    codec = CODECS[(component_type, data_type)]
    n = data_type.count
    out = bytearray()
    for value in values:
        if data_type is DataType.SCALAR:
            components = (value,)
        else:
            if not isinstance(value, (tuple, list)) or len(value) != n:
                raise TypeMismatchError(f"expected {n} components for {data_type.value}, got {value!r}")
            components = tuple(value)
        for component in components:
            _check_component(component, component_type)
        try:
            out += codec.pack(*components)
        except struct.error as exc:
            raise TypeMismatchError(f"value {value!r} does not fit {component_type.value}: {exc}") from exc
    return bytes(out)
