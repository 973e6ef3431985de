from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .b3dm import B3dm
from .cmpt import Cmpt
from .codec import TileContent, decode, sniff
from .config import DEFAULT_CONFIG, CodecConfig, ConfigError, load_config
from .errors import TilesError
from .glb import GlbError, is_glb, read_glb_header
from .i3dm import GLTF_FORMAT_EMBEDDED, I3dm
from .pnts import Pnts
from .tables import Table
from .tileset import Tileset, count_tiles, effective_refine, find_geometric_error_violations, iter_tiles, max_depth


def _describe_table(name: str, table: Table) -> str:
    if table.is_empty():
        return f"{name}: none"
    return f"{name}: {', '.join(table.names()) or '-'} ({len(table.body)} binary bytes)"


def _describe_payload(payload: bytes) -> str:
    if not is_glb(payload):
        return f"payload: {len(payload)} bytes (not GLB)"
    try:
        header = read_glb_header(payload)
    except GlbError as exc:
        return f"payload: {len(payload)} bytes ({exc})"
    chunks = ", ".join(f"{name}={length}" for name, length in header.chunks)
    return f"GLB version {header.version}, {header.length} bytes, chunks: {chunks}"


def describe_content(tile: TileContent, indent: str = "") -> list[str]:
    if isinstance(tile, Cmpt):
        lines = [f"{indent}cmpt: {len(tile.tiles)} inner tiles"]
        for i, inner in enumerate(tile.tiles):
            lines.append(f"{indent}  [{i}]")
            lines.extend(describe_content(inner, indent + "    "))
        return lines

    if isinstance(tile, B3dm):
        lines = [f"{indent}b3dm: BATCH_LENGTH={tile.batch_length}"]
        payload = tile.glb
    elif isinstance(tile, I3dm):
        lines = [f"{indent}i3dm: INSTANCES_LENGTH={tile.instances_length}, gltfFormat={tile.gltf_format}"]
        payload = tile.gltf
    else:
        lines = [f"{indent}pnts: POINTS_LENGTH={tile.points_length}"]
        payload = None

    lines.append(f"{indent}{_describe_table('feature table', tile.feature_table)}")
    lines.append(f"{indent}{_describe_table('batch table', tile.batch_table)}")
    if isinstance(tile, I3dm) and tile.gltf_format != GLTF_FORMAT_EMBEDDED:
        lines.append(f"{indent}glTF uri: {tile.gltf_uri}")
    elif payload is not None:
        lines.append(f"{indent}{_describe_payload(payload)}")
    return lines


def describe_tileset(tileset: Tileset, config: CodecConfig = DEFAULT_CONFIG) -> list[str]:
    flag = "" if tileset.asset.is_recognized_version(config.recognized_versions) else " (unrecognized)"
    lines = [
        f"asset.version: {tileset.asset.version}{flag}",
        f"geometricError: {tileset.geometric_error}",
        f"tiles: {count_tiles(tileset)}, depth: {max_depth(tileset)}",
        f"root refine: {effective_refine(tileset.root).value}",
    ]
    contents = sum(1 for tile, _ in iter_tiles(tileset) if tile.content is not None)
    lines.append(f"content references: {contents}")
    for parent, child in find_geometric_error_violations(tileset):
        lines.append(
            f"warning: child geometricError {child.geometric_error} exceeds parent {parent.geometric_error}"
        )
    return lines


def extract_payloads(tile: TileContent, stem: str) -> list[tuple[str, bytes]]:
    """(file name, bytes) for every embedded GLB; cmpt inner tiles get an index suffix."""
    if isinstance(tile, Cmpt):
        out: list[tuple[str, bytes]] = []
        for i, inner in enumerate(tile.tiles):
            out.extend(extract_payloads(inner, f"{stem}_{i}"))
        return out
    if isinstance(tile, B3dm):
        return [(f"{stem}.glb", tile.glb)]
    if isinstance(tile, I3dm) and tile.gltf_format == GLTF_FORMAT_EMBEDDED:
        return [(f"{stem}.glb", tile.gltf)]
    return []


def _cmd_inspect(args: argparse.Namespace, config: CodecConfig) -> int:
    data = args.path.read_bytes()
    print(f"File: {args.path} ({len(data)} bytes, {sniff(data)})")
    value = decode(data, config)
    lines = describe_tileset(value, config) if isinstance(value, Tileset) else describe_content(value)
    for line in lines:
        print(line)
    return 0


def _cmd_extract(args: argparse.Namespace, config: CodecConfig) -> int:
    data = args.path.read_bytes()
    value = decode(data, config)
    if isinstance(value, (Tileset, Pnts)):
        print(f"Nothing to extract from {sniff(data)}: {args.path}")
        return 0

    out_dir: Path = args.out or args.path.parent
    out_dir.mkdir(parents=True, exist_ok=True)
    payloads = extract_payloads(value, args.path.stem)
    for name, payload in payloads:
        out_path = out_dir / name
        out_path.write_bytes(payload)
        print(f"Writing {out_path} ({len(payload)} bytes)")
    if isinstance(value, I3dm) and value.gltf_format != GLTF_FORMAT_EMBEDDED:
        print(f"glTF is external: {value.gltf_uri}")
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect 3D Tiles tilesets and tile content (b3dm/i3dm/pnts/cmpt).")
    parser.add_argument("--config", type=Path, default=None, help="Codec config JSON path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log section layout while decoding")
    sub = parser.add_subparsers(dest="command", required=True)

    inspect = sub.add_parser("inspect", help="Print header, tables and payload summary")
    inspect.add_argument("path", type=Path, help="tileset.json or tile content file")

    extract = sub.add_parser("extract", help="Write embedded GLB payloads next to the input")
    extract.add_argument("path", type=Path, help="b3dm, i3dm or cmpt file")
    extract.add_argument("--out", type=Path, default=None, help="Output directory (default: input directory)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(args.config) if args.config else DEFAULT_CONFIG
        if not args.path.is_file():
            raise FileNotFoundError(f"Input not found: {args.path}")
        if args.command == "inspect":
            return _cmd_inspect(args, config)
        return _cmd_extract(args, config)
    except (TilesError, ConfigError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
