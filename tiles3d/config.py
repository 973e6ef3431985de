from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

RECOGNIZED_VERSIONS = ("1.0", "1.1")


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class CodecConfig:
    max_composite_depth: int = 16
    recognized_versions: tuple[str, ...] = RECOGNIZED_VERSIONS
    json_indent: int | None = None


DEFAULT_CONFIG = CodecConfig()


def _parse_int(value: Any, name: str, *, minimum: int = 0) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer")
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}")
    return value


def parse_config(data: dict[str, Any]) -> CodecConfig:
    unknown = set(data) - {"max_composite_depth", "recognized_versions", "json_indent"}
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    max_depth = _parse_int(data.get("max_composite_depth", DEFAULT_CONFIG.max_composite_depth), "max_composite_depth", minimum=1)

    versions = data.get("recognized_versions", list(RECOGNIZED_VERSIONS))
    if not isinstance(versions, list) or not all(isinstance(v, str) for v in versions):
        raise ConfigError("recognized_versions must be a list of strings")

    indent = data.get("json_indent")
    if indent is not None:
        indent = _parse_int(indent, "json_indent")

    return CodecConfig(max_composite_depth=max_depth, recognized_versions=tuple(versions), json_indent=indent)


def load_config(path: Path) -> CodecConfig:
    try:
        data = json.loads(path.read_text("utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ConfigError(f"Failed to read config: {path} ({exc})") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be an object: {path}")
    return parse_config(data)
