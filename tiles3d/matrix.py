from __future__ import annotations

import math
from typing import Sequence


def mat4_identity() -> list[float]:
    return [1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 1.0]


def mat4_multiply(a: Sequence[float], b: Sequence[float]) -> list[float]:
    out = [0.0] * 16
    for col in range(4):
        for row in range(4):
            out[col * 4 + row] = (
                a[0 * 4 + row] * b[col * 4 + 0]
                + a[1 * 4 + row] * b[col * 4 + 1]
                + a[2 * 4 + row] * b[col * 4 + 2]
                + a[3 * 4 + row] * b[col * 4 + 3]
            )
    return out


def mat4_transform_point(m: Sequence[float], p: Sequence[float]) -> tuple[float, float, float]:
    x, y, z = p
    tx = m[0] * x + m[4] * y + m[8] * z + m[12]
    ty = m[1] * x + m[5] * y + m[9] * z + m[13]
    tz = m[2] * x + m[6] * y + m[10] * z + m[14]
    tw = m[3] * x + m[7] * y + m[11] * z + m[15]
    if tw not in (0.0, 1.0):
        tx /= tw
        ty /= tw
        tz /= tw
    return (tx, ty, tz)


def mat4_transform_vector(m: Sequence[float], v: Sequence[float]) -> tuple[float, float, float]:
    x, y, z = v
    return (
        m[0] * x + m[4] * y + m[8] * z,
        m[1] * x + m[5] * y + m[9] * z,
        m[2] * x + m[6] * y + m[10] * z,
    )


def mat4_max_scale(m: Sequence[float]) -> float:
    return max(math.sqrt(m[col * 4] ** 2 + m[col * 4 + 1] ** 2 + m[col * 4 + 2] ** 2) for col in range(3))
