from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Union

from .components import ComponentType, DataType, read_values, write_values
from .errors import (
    InvalidJsonError,
    MissingRequiredSemanticError,
    OutOfBoundsError,
    TypeMismatchError,
    UnalignedOffsetError,
)
from .header import ALIGNMENT, padding_for
from .jsonutil import dumps_compact

logger = logging.getLogger(__name__)

PASSTHROUGH_KEYS = frozenset({"extensions", "extras"})
_DESCRIPTOR_KEYS = frozenset({"byteOffset", "componentType", "type"})


@dataclass(frozen=True)
class Semantic:
    """Implicit layout of a feature-table semantic for one tile format."""

    component_type: ComponentType
    data_type: DataType
    per_feature: bool = True
    allowed: tuple[ComponentType, ...] = ()

    def accepts(self, component_type: ComponentType) -> bool:
        return component_type in (self.allowed or (self.component_type,))


@dataclass
class InlineProperty:
    value: Any

    def to_json(self) -> Any:
        return self.value


@dataclass
class BinaryProperty:
    byte_offset: int
    component_type: ComponentType | None = None
    data_type: DataType | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"byteOffset": self.byte_offset}
        if self.component_type is not None:
            out["componentType"] = self.component_type.value
        if self.data_type is not None:
            out["type"] = self.data_type.value
        out.update(self.extra)
        return out


Property = Union[InlineProperty, BinaryProperty]


def _parse_property(name: str, value: Any, path: str) -> Property:
    if name in PASSTHROUGH_KEYS or not isinstance(value, dict) or "byteOffset" not in value:
        return InlineProperty(value)
    byte_offset = value["byteOffset"]
    if not isinstance(byte_offset, int) or isinstance(byte_offset, bool) or byte_offset < 0:
        raise InvalidJsonError(f"byteOffset must be a non-negative integer, got {byte_offset!r}", path=f"{path}.byteOffset")
    component_type = None
    data_type = None
    if "componentType" in value:
        component_type = ComponentType.parse(value["componentType"], path=f"{path}.componentType")
    if "type" in value:
        data_type = DataType.parse(value["type"], path=f"{path}.type")
    extra = {k: v for k, v in value.items() if k not in _DESCRIPTOR_KEYS}
    return BinaryProperty(byte_offset, component_type, data_type, extra)


@dataclass
class Table:
    """JSON header plus binary body, shared by feature tables and batch tables.

    ``properties`` keeps the JSON key order; binary descriptors keep whichever of
    ``componentType``/``type`` were written so re-encoding reproduces the header.
    """

    properties: dict[str, Property] = field(default_factory=dict)
    body: bytes = b""

    def __contains__(self, name: str) -> bool:
        return name in self.properties

    def is_empty(self) -> bool:
        return not self.properties and not self.body

    def names(self) -> list[str]:
        return [name for name in self.properties if name not in PASSTHROUGH_KEYS]

    def to_json(self) -> dict[str, Any]:
        return {name: prop.to_json() for name, prop in self.properties.items()}

    def resolve(
        self,
        name: str,
        semantics: Mapping[str, Semantic] | None = None,
    ) -> tuple[ComponentType, DataType] | None:
        prop = self.properties.get(name)
        if not isinstance(prop, BinaryProperty):
            return None
        semantic = (semantics or {}).get(name)
        component_type = prop.component_type or (semantic.component_type if semantic else None)
        data_type = prop.data_type or (semantic.data_type if semantic else None)
        if component_type is None or data_type is None:
            return None
        return component_type, data_type

    def get_global(self, name: str, semantics: Mapping[str, Semantic] | None = None) -> Any:
        """Value of a per-tile semantic, inline or stored as one element in the body."""
        prop = self.properties.get(name)
        if prop is None:
            return None
        if isinstance(prop, InlineProperty):
            return prop.value
        resolved = self.resolve(name, semantics)
        if resolved is None:
            raise TypeMismatchError(f"cannot determine componentType/type of '{name}'", path=name)
        component_type, data_type = resolved
        value = read_values(self.body, prop.byte_offset, 1, component_type, data_type)[0]
        return list(value) if isinstance(value, tuple) else value

    def get_values(
        self,
        name: str,
        count: int,
        semantics: Mapping[str, Semantic] | None = None,
        component_type: ComponentType | None = None,
    ) -> list[Any] | None:
        """Per-feature values of ``name``; None when the property is absent.

        Passing ``component_type`` asserts the stored interpretation; a different
        declared type raises TypeMismatchError instead of converting.
        """
        prop = self.properties.get(name)
        if prop is None:
            return None
        if isinstance(prop, InlineProperty):
            if component_type is not None:
                raise TypeMismatchError(f"'{name}' is an inline JSON array, not {component_type.value}", path=name)
            if not isinstance(prop.value, list):
                raise TypeMismatchError(f"'{name}' is not an array", path=name)
            return list(prop.value)
        resolved = self.resolve(name, semantics)
        if resolved is None:
            raise TypeMismatchError(f"cannot determine componentType/type of '{name}'", path=name)
        declared, data_type = resolved
        if component_type is not None and component_type is not declared:
            raise TypeMismatchError(
                f"'{name}' is stored as {declared.value}, requested {component_type.value}", path=name
            )
        return read_values(self.body, prop.byte_offset, count, declared, data_type)

    def require(self, name: str, kind: str = "feature table") -> Property:
        prop = self.properties.get(name)
        if prop is None:
            raise MissingRequiredSemanticError(f"{kind} is missing required semantic '{name}'", path=f"{kind}.{name}")
        return prop

    def set_inline(self, name: str, value: Any) -> None:
        self.properties[name] = InlineProperty(value)

    def set_binary(
        self,
        name: str,
        values: Iterable[Any],
        component_type: ComponentType,
        data_type: DataType,
        *,
        explicit: bool = True,
    ) -> BinaryProperty:
        """Append ``values`` to the body, aligned to the component width."""
        body = bytearray(self.body)
        body += b"\x00" * padding_for(len(body), component_type.size)
        prop = BinaryProperty(
            len(body),
            component_type if explicit else None,
            data_type if explicit else None,
        )
        body += write_values(values, component_type, data_type)
        self.body = bytes(body)
        self.properties[name] = prop
        return prop

    def check_ranges(
        self,
        row_count: int,
        semantics: Mapping[str, Semantic] | None = None,
        *,
        base: int = 0,
        kind: str = "feature table",
    ) -> None:
        """Every resolvable binary property must fit inside the body."""
        for name, prop in self.properties.items():
            if not isinstance(prop, BinaryProperty):
                continue
            resolved = self.resolve(name, semantics)
            if resolved is None:
                continue
            component_type, data_type = resolved
            semantic = (semantics or {}).get(name)
            count = row_count if semantic is None or semantic.per_feature else 1
            size = component_type.size * data_type.count
            end = prop.byte_offset + count * size
            if end > len(self.body):
                raise OutOfBoundsError(
                    f"'{name}' needs bytes {prop.byte_offset}..{end}, binary body is {len(self.body)} bytes",
                    offset=base + prop.byte_offset,
                    path=f"{kind}.{name}",
                )


def read_table(
    data: bytes,
    offset: int,
    json_byte_length: int,
    binary_byte_length: int,
    *,
    semantics: Mapping[str, Semantic] | None = None,
    strict_types: bool = False,
    base: int = 0,
    kind: str = "feature table",
) -> Table:
    """Split a table region of a tile buffer into its JSON header and binary body.

    ``offset`` is relative to the start of the tile, which is also the origin for
    the 8-byte alignment of the binary body. ``strict_types`` requires every binary
    descriptor to name both componentType and type (batch tables).
    """
    json_region = data[offset : offset + json_byte_length]
    body_offset = offset + json_byte_length
    body = data[body_offset : body_offset + binary_byte_length]

    if json_byte_length == 0:
        if binary_byte_length:
            logger.debug("%s has %d binary bytes but no JSON header", kind, binary_byte_length)
        return Table({}, bytes(body))

    try:
        text = bytes(json_region).rstrip(b" \x00").decode("utf-8")
        header = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidJsonError(f"{kind} JSON is malformed: {exc}", offset=base + offset, path=kind) from exc
    if not isinstance(header, dict):
        raise InvalidJsonError(f"{kind} JSON must be an object", offset=base + offset, path=kind)

    if binary_byte_length and body_offset % ALIGNMENT:
        raise UnalignedOffsetError(
            f"{kind} binary body starts at {body_offset}, not {ALIGNMENT}-byte aligned",
            offset=base + body_offset,
            path=kind,
        )

    table = Table({}, bytes(body))
    for name, value in header.items():
        path = f"{kind}.{name}"
        prop = _parse_property(name, value, path)
        table.properties[name] = prop
        if not isinstance(prop, BinaryProperty):
            continue

        semantic = (semantics or {}).get(name)
        if strict_types and (prop.component_type is None or prop.data_type is None):
            raise InvalidJsonError(f"'{name}' must declare componentType and type", path=path)
        if semantic is not None:
            if prop.component_type is not None and not semantic.accepts(prop.component_type):
                raise TypeMismatchError(f"componentType {prop.component_type.value} not allowed for '{name}'", path=path)
            if prop.data_type is not None and prop.data_type is not semantic.data_type:
                raise TypeMismatchError(
                    f"type {prop.data_type.value} not allowed for '{name}', expected {semantic.data_type.value}",
                    path=path,
                )

        resolved = table.resolve(name, semantics)
        if resolved is not None and prop.byte_offset % resolved[0].size:
            raise UnalignedOffsetError(
                f"byteOffset {prop.byte_offset} of '{name}' is not a multiple of {resolved[0].size} ({resolved[0].value})",
                offset=base + body_offset + prop.byte_offset,
                path=f"{path}.byteOffset",
            )
        if prop.byte_offset > len(body):
            raise OutOfBoundsError(
                f"byteOffset {prop.byte_offset} of '{name}' is past the {len(body)}-byte binary body",
                offset=base + body_offset + prop.byte_offset,
                path=f"{path}.byteOffset",
            )

    logger.debug("read %s: %d properties, %d body bytes", kind, len(table.properties), len(body))
    return table


def write_table(table: Table, offset: int) -> tuple[bytes, bytes]:
    """Encode ``table`` starting at ``offset`` bytes into the tile.

    JSON is space-padded so the body lands on an 8-byte boundary; the body is
    zero-padded to a multiple of 8.
    """
    if table.is_empty():
        return b"", b""
    json_bytes = dumps_compact(table.to_json()).encode("utf-8")
    json_bytes += b" " * padding_for(offset + len(json_bytes))
    body = table.body + b"\x00" * padding_for(len(table.body))
    return json_bytes, body
