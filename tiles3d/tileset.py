from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Sequence

from .bounding_volume import BoundingVolume, decode_bounding_volume
from .config import DEFAULT_CONFIG, RECOGNIZED_VERSIONS, CodecConfig
from .errors import InvalidJsonError
from .jsonutil import expect_number, expect_numbers, expect_object, expect_string, require, unknown_keys
from .matrix import mat4_identity, mat4_multiply

logger = logging.getLogger(__name__)

_ASSET_KEYS = frozenset({"version", "tilesetVersion"})
_PROPERTY_KEYS = frozenset({"minimum", "maximum"})
_TILE_KEYS = frozenset(
    {"boundingVolume", "viewerRequestVolume", "geometricError", "refine", "transform", "content", "children"}
)
_TILESET_KEYS = frozenset(
    {"asset", "properties", "extensionsUsed", "extensionsRequired", "geometricError", "root"}
)


class Refine(str, Enum):
    ADD = "ADD"
    REPLACE = "REPLACE"


@dataclass
class Asset:
    version: str
    tileset_version: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def is_recognized_version(self, versions: Sequence[str] = RECOGNIZED_VERSIONS) -> bool:
        return self.version in versions

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"version": self.version}
        if self.tileset_version is not None:
            out["tilesetVersion"] = self.tileset_version
        out.update(self.extra)
        return out


@dataclass
class Content:
    uri: str
    bounding_volume: BoundingVolume | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    # Pre-1.0 tilesets spell the key "url".
    uri_key: str = "uri"

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.bounding_volume is not None:
            out["boundingVolume"] = self.bounding_volume.to_json()
        out[self.uri_key] = self.uri
        out.update(self.extra)
        return out


@dataclass
class Tile:
    bounding_volume: BoundingVolume
    geometric_error: float
    refine: Refine | None = None
    transform: list[float] | None = None
    content: Content | None = None
    children: list["Tile"] = field(default_factory=list)
    viewer_request_volume: BoundingVolume | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def local_transform(self) -> list[float]:
        return list(self.transform) if self.transform is not None else mat4_identity()


@dataclass
class PropertyRange:
    minimum: float
    maximum: float
    extra: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {"minimum": self.minimum, "maximum": self.maximum, **self.extra}


@dataclass
class Tileset:
    asset: Asset
    geometric_error: float
    root: Tile
    properties: dict[str, PropertyRange] | None = None
    extensions_used: list[str] | None = None
    extensions_required: list[str] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"asset": self.asset.to_json()}
        if self.properties is not None:
            out["properties"] = {name: prop.to_json() for name, prop in self.properties.items()}
        if self.extensions_used is not None:
            out["extensionsUsed"] = list(self.extensions_used)
        if self.extensions_required is not None:
            out["extensionsRequired"] = list(self.extensions_required)
        out["geometricError"] = self.geometric_error
        out["root"] = _encode_tile_tree(self.root)
        out.update(self.extra)
        return out


def _decode_asset(value: Any, path: str) -> Asset:
    obj = expect_object(value, path)
    version = expect_string(require(obj, "version", path), f"{path}.version")
    tileset_version = obj.get("tilesetVersion")
    if tileset_version is not None:
        expect_string(tileset_version, f"{path}.tilesetVersion")
    return Asset(version, tileset_version, unknown_keys(obj, _ASSET_KEYS))


def _decode_content(value: Any, path: str) -> Content:
    obj = expect_object(value, path)
    uri_key = "uri" if "uri" in obj or "url" not in obj else "url"
    uri = expect_string(require(obj, uri_key, path), f"{path}.{uri_key}")
    bounding_volume = None
    if "boundingVolume" in obj:
        bounding_volume = decode_bounding_volume(obj["boundingVolume"], f"{path}.boundingVolume")
    extra = unknown_keys(obj, frozenset({uri_key, "boundingVolume"}))
    return Content(uri, bounding_volume, extra, uri_key)


def _decode_refine(value: Any, path: str) -> Refine:
    try:
        return Refine(value)
    except ValueError:
        raise InvalidJsonError(f"refine must be 'ADD' or 'REPLACE', got {value!r}", path=path) from None


def _decode_tile(obj: dict[str, Any], path: str) -> Tile:
    bounding_volume = decode_bounding_volume(require(obj, "boundingVolume", path), f"{path}.boundingVolume")
    geometric_error = expect_number(
        require(obj, "geometricError", path), f"{path}.geometricError", non_negative=True
    )
    tile = Tile(bounding_volume, geometric_error, extra=unknown_keys(obj, _TILE_KEYS))
    if "viewerRequestVolume" in obj:
        tile.viewer_request_volume = decode_bounding_volume(
            obj["viewerRequestVolume"], f"{path}.viewerRequestVolume"
        )
    if "refine" in obj:
        tile.refine = _decode_refine(obj["refine"], f"{path}.refine")
    if "transform" in obj:
        tile.transform = expect_numbers(obj["transform"], f"{path}.transform", 16)
    if "content" in obj:
        tile.content = _decode_content(obj["content"], f"{path}.content")
    return tile


def _decode_tile_tree(value: Any, path: str) -> Tile:
    # Explicit stack: tile trees can be deeper than the interpreter's recursion limit.
    root_obj = expect_object(value, path)
    root = _decode_tile(root_obj, path)
    stack: list[tuple[dict[str, Any], str, Tile]] = [(root_obj, path, root)]
    while stack:
        obj, tile_path, tile = stack.pop()
        if "children" not in obj:
            continue
        children = obj["children"]
        if not isinstance(children, list):
            raise InvalidJsonError("children must be an array", path=f"{tile_path}.children")
        pending = []
        for i, child in enumerate(children):
            child_path = f"{tile_path}.children[{i}]"
            child_obj = expect_object(child, child_path)
            child_tile = _decode_tile(child_obj, child_path)
            tile.children.append(child_tile)
            pending.append((child_obj, child_path, child_tile))
        stack.extend(reversed(pending))
    return root


def _tile_fields(tile: Tile) -> dict[str, Any]:
    out: dict[str, Any] = {"boundingVolume": tile.bounding_volume.to_json()}
    if tile.viewer_request_volume is not None:
        out["viewerRequestVolume"] = tile.viewer_request_volume.to_json()
    out["geometricError"] = tile.geometric_error
    if tile.refine is not None:
        out["refine"] = tile.refine.value
    if tile.transform is not None:
        out["transform"] = list(tile.transform)
    if tile.content is not None:
        out["content"] = tile.content.to_json()
    if tile.children:
        out["children"] = []
    out.update(tile.extra)
    return out


def _encode_tile_tree(root: Tile) -> dict[str, Any]:
    root_json = _tile_fields(root)
    stack = [(root, root_json)]
    while stack:
        tile, out = stack.pop()
        for child in tile.children:
            child_json = _tile_fields(child)
            out["children"].append(child_json)
            stack.append((child, child_json))
    return root_json


def _decode_properties(value: Any, path: str) -> dict[str, PropertyRange]:
    obj = expect_object(value, path)
    properties: dict[str, PropertyRange] = {}
    for name, item in obj.items():
        item_path = f"{path}.{name}"
        item = expect_object(item, item_path)
        properties[name] = PropertyRange(
            expect_number(require(item, "minimum", item_path), f"{item_path}.minimum"),
            expect_number(require(item, "maximum", item_path), f"{item_path}.maximum"),
            unknown_keys(item, _PROPERTY_KEYS),
        )
    return properties


def _decode_string_list(value: Any, path: str) -> list[str]:
    if not isinstance(value, list):
        raise InvalidJsonError("expected an array of strings", path=path)
    return [expect_string(item, f"{path}[{i}]") for i, item in enumerate(value)]


def decode_tileset(source: str | bytes | dict[str, Any], config: CodecConfig | None = None) -> Tileset:
    """Decode a tileset JSON document.

    The result is complete or an exception is raised; unknown keys of every object
    are kept in ``extra`` and written back unchanged by ``encode_tileset``.
    """
    config = config or DEFAULT_CONFIG
    if isinstance(source, dict):
        obj = source
    else:
        try:
            text = source.decode("utf-8-sig") if isinstance(source, (bytes, bytearray)) else source
            obj = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidJsonError(f"tileset is not valid JSON: {exc}", path="$") from exc
    obj = expect_object(obj, "$")

    asset = _decode_asset(require(obj, "asset", "$"), "asset")
    if not asset.is_recognized_version(config.recognized_versions):
        logger.warning("Unrecognized tileset asset.version %r, decoding anyway", asset.version)
    geometric_error = expect_number(require(obj, "geometricError", "$"), "geometricError", non_negative=True)
    root = _decode_tile_tree(require(obj, "root", "$"), "root")

    tileset = Tileset(asset, geometric_error, root, extra=unknown_keys(obj, _TILESET_KEYS))
    if "properties" in obj:
        tileset.properties = _decode_properties(obj["properties"], "properties")
    if "extensionsUsed" in obj:
        tileset.extensions_used = _decode_string_list(obj["extensionsUsed"], "extensionsUsed")
    if "extensionsRequired" in obj:
        tileset.extensions_required = _decode_string_list(obj["extensionsRequired"], "extensionsRequired")
    return tileset


def encode_tileset(tileset: Tileset, indent: int | None = None) -> str:
    if indent is None:
        return json.dumps(tileset.to_json(), ensure_ascii=False, separators=(",", ":"))
    return json.dumps(tileset.to_json(), ensure_ascii=False, indent=indent)


def iter_tiles(root: Tileset | Tile) -> Iterator[tuple[Tile, list[Tile]]]:
    """Pre-order walk yielding each tile with its ancestors, root first."""
    start = root.root if isinstance(root, Tileset) else root
    stack: list[tuple[Tile, list[Tile]]] = [(start, [])]
    while stack:
        tile, ancestors = stack.pop()
        yield tile, ancestors
        lineage = [*ancestors, tile]
        for child in reversed(tile.children):
            stack.append((child, lineage))


def effective_refine(tile: Tile, ancestors: Sequence[Tile] = ()) -> Refine:
    """Refinement of ``tile``: its own, else the nearest ancestor's, else REPLACE."""
    for node in (tile, *reversed(ancestors)):
        if node.refine is not None:
            return node.refine
    return Refine.REPLACE


def world_transform(tile: Tile, ancestors: Sequence[Tile] = ()) -> list[float]:
    matrix = mat4_identity()
    for node in (*ancestors, tile):
        if node.transform is not None:
            matrix = mat4_multiply(matrix, node.transform)
    return matrix


def content_uris(tileset: Tileset) -> list[str]:
    return [tile.content.uri for tile, _ in iter_tiles(tileset) if tile.content is not None]


def find_geometric_error_violations(tileset: Tileset) -> list[tuple[Tile, Tile]]:
    """(parent, child) pairs where the child's geometric error exceeds its parent's.

    Real tilesets break this often, so it is reported, never enforced.
    """
    return [
        (ancestors[-1], tile)
        for tile, ancestors in iter_tiles(tileset)
        if ancestors and tile.geometric_error > ancestors[-1].geometric_error
    ]


def count_tiles(tileset: Tileset) -> int:
    return sum(1 for _ in iter_tiles(tileset))


def max_depth(tileset: Tileset) -> int:
    return max(len(ancestors) for _, ancestors in iter_tiles(tileset))
