from __future__ import annotations

import json
import math
from typing import Any

from .errors import InvalidJsonError, MissingFieldError


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def expect_object(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidJsonError("expected a JSON object", path=path)
    return value


def expect_number(value: Any, path: str, *, non_negative: bool = False) -> float:
    if not is_number(value) or not math.isfinite(value):
        raise InvalidJsonError("expected a finite number", path=path)
    if non_negative and value < 0:
        raise InvalidJsonError(f"expected a non-negative number, got {value}", path=path)
    return value


def expect_numbers(value: Any, path: str, length: int | None = None) -> list[float]:
    if not isinstance(value, list):
        raise InvalidJsonError("expected an array of numbers", path=path)
    if length is not None and len(value) != length:
        raise InvalidJsonError(f"expected {length} numbers, got {len(value)}", path=path)
    for i, item in enumerate(value):
        expect_number(item, f"{path}[{i}]")
    return list(value)


def expect_string(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise InvalidJsonError("expected a string", path=path)
    return value


def require(obj: dict[str, Any], key: str, path: str) -> Any:
    if key not in obj:
        raise MissingFieldError(f"missing required field '{key}'", path=path)
    return obj[key]


def unknown_keys(obj: dict[str, Any], known: frozenset[str]) -> dict[str, Any]:
    return {k: v for k, v in obj.items() if k not in known}


def dumps_compact(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
