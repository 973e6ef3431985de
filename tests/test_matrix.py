import pytest

from builders import scale, translation
from tiles3d.matrix import (
    mat4_identity,
    mat4_max_scale,
    mat4_multiply,
    mat4_transform_point,
    mat4_transform_vector,
)


def test_identity_leaves_points_alone():
    assert mat4_transform_point(mat4_identity(), (1.5, -2.0, 3.0)) == (1.5, -2.0, 3.0)
    assert mat4_multiply(mat4_identity(), translation(1.0, 2.0, 3.0)) == translation(1.0, 2.0, 3.0)


def test_column_major_translation():
    assert mat4_transform_point(translation(1.0, 2.0, 3.0), (1.0, 1.0, 1.0)) == (2.0, 3.0, 4.0)
    assert mat4_transform_vector(translation(1.0, 2.0, 3.0), (1.0, 1.0, 1.0)) == (1.0, 1.0, 1.0)


def test_multiply_applies_right_operand_first():
    m = mat4_multiply(translation(10.0, 0.0, 0.0), scale(2.0, 2.0, 2.0))
    assert mat4_transform_point(m, (1.0, 1.0, 1.0)) == (12.0, 2.0, 2.0)


def test_max_scale():
    assert mat4_max_scale(scale(1.0, -4.0, 2.0)) == pytest.approx(4.0)
