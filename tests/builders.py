"""Raw byte builders for tile content fixtures, independent of the codec's writers."""

import json
import struct


def compact(obj) -> bytes:
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


def make_glb(gltf=None) -> bytes:
    json_bytes = compact(gltf or {"asset": {"version": "2.0"}})
    json_bytes += b" " * ((4 - len(json_bytes) % 4) % 4)
    total = 12 + 8 + len(json_bytes)
    return struct.pack("<4sII", b"glTF", 2, total) + struct.pack("<II", len(json_bytes), 0x4E4F534A) + json_bytes


def _json_section(value, offset, pad):
    if value is None:
        return b""
    data = value if isinstance(value, bytes) else compact(value)
    if pad:
        data += b" " * ((8 - (offset + len(data)) % 8) % 8)
    return data


def _bin_section(data, pad):
    if pad:
        data += b"\x00" * ((8 - len(data) % 8) % 8)
    return data


def build_tile(
    magic,
    *,
    feature_json=None,
    feature_bin=b"",
    batch_json=None,
    batch_bin=b"",
    payload=b"",
    gltf_format=None,
    version=1,
    byte_length=None,
    pad=True,
):
    """Assemble a b3dm/i3dm/pnts buffer; ``gltf_format`` switches to the 32-byte i3dm header."""
    offset = 32 if gltf_format is not None else 28
    ft_json = _json_section(feature_json, offset, pad)
    ft_bin = _bin_section(feature_bin, pad)
    offset += len(ft_json) + len(ft_bin)
    bt_json = _json_section(batch_json, offset, pad)
    bt_bin = _bin_section(batch_bin, pad)
    body = ft_json + ft_bin + bt_json + bt_bin + payload
    fields = [len(ft_json), len(ft_bin), len(bt_json), len(bt_bin)]
    if gltf_format is not None:
        fields.append(gltf_format)
    header_size = 12 + 4 * len(fields)
    total = header_size + len(body) if byte_length is None else byte_length
    return struct.pack("<4sII", magic, version, total) + struct.pack(f"<{len(fields)}I", *fields) + body


def build_cmpt(*tiles, version=1, byte_length=None, tiles_length=None):
    body = b"".join(tiles)
    total = 16 + len(body) if byte_length is None else byte_length
    count = len(tiles) if tiles_length is None else tiles_length
    return struct.pack("<4sIII", b"cmpt", version, total, count) + body


def pnts_scenario_a():
    positions = struct.pack("<9f", 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 9.0)
    return build_tile(
        b"pnts",
        feature_json={"POINTS_LENGTH": 3, "POSITION": {"byteOffset": 0}},
        feature_bin=positions,
    )


def translation(tx, ty, tz):
    """Column-major 4x4 translation, as stored in a tile's ``transform``."""
    return [1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, tx, ty, tz, 1.0]


def scale(sx, sy, sz):
    return [sx, 0.0, 0.0, 0.0, 0.0, sy, 0.0, 0.0, 0.0, 0.0, sz, 0.0, 0.0, 0.0, 0.0, 1.0]
